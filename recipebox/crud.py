# crud.py
# Contains the functions for Create, Read, Update, Delete (CRUD) operations.

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from recipebox import models
from recipebox import schemas

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Get a logger instance
logger = logging.getLogger(__name__)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def _now():
    return datetime.now(timezone.utc)


# --- User CRUD Functions ---
def get_user(db: Session, user_id: UUID):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.UserCreate, is_admin: bool = False):
    hashed_password = get_password_hash(user.password)
    db_user = models.User(
        username=user.username,
        email=user.email,
        hashed_password=hashed_password,
        is_admin=is_admin,
        created_at=_now(),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def record_elevation(db: Session, user_id: UUID, granted: bool, reason: str, client_ip: Optional[str]):
    entry = models.AdminElevation(
        user_id=user_id,
        granted=granted,
        reason=reason,
        client_ip=client_ip,
        created_at=_now(),
    )
    db.add(entry)
    db.commit()
    return entry


# --- Recipe CRUD Functions ---
def _recipe_query(db: Session):
    return db.query(models.Recipe).options(
        selectinload(models.Recipe.ingredients),
        selectinload(models.Recipe.steps),
    )


def get_recipe(db: Session, recipe_id: UUID):
    """
    Retrieve a single recipe with its ingredients and steps.
    """
    logger.debug(f"Retrieving recipe with id {recipe_id}")
    return _recipe_query(db).filter(models.Recipe.id == recipe_id).first()


def get_recipes_by_status(db: Session, status: Optional[models.RecipeStatus] = None):
    query = _recipe_query(db)
    if status is not None:
        query = query.filter(models.Recipe.status == status)
    return query.order_by(models.Recipe.created_at.desc()).all()


def get_recipes_by_author(db: Session, author_id: UUID, status: Optional[models.RecipeStatus] = None):
    query = _recipe_query(db).filter(models.Recipe.author_id == author_id)
    if status is not None:
        query = query.filter(models.Recipe.status == status)
    return query.order_by(models.Recipe.created_at).all()


def _build_ingredients(draft: schemas.RecipeDraft) -> List[models.RecipeIngredient]:
    return [
        models.RecipeIngredient(position=index, name=name, quantity=quantity, unit=unit)
        for index, (name, quantity, unit) in enumerate(
            zip(draft.ingredients, draft.ingredient_quantities, draft.ingredient_units)
        )
    ]


def _build_steps(draft: schemas.RecipeDraft, step_images: List[Optional[str]]) -> List[models.RecipeStep]:
    return [
        models.RecipeStep(position=index, description=step.description, image=step_images[index])
        for index, step in enumerate(draft.steps)
    ]


def create_recipe(
    db: Session,
    draft: schemas.RecipeDraft,
    author_id: UUID,
    image: Optional[str],
    step_images: List[Optional[str]],
):
    """
    Persist a new recipe in the pending state.
    The author reference is written in the same transaction, which is what
    places the recipe on the author's created_recipes.
    """
    logger.debug(f"Creating recipe '{draft.title}' for author {author_id}")
    now = _now()
    db_recipe = models.Recipe(
        title=draft.title,
        description=draft.description,
        categories=[c.value for c in draft.categories],
        servings=draft.servings,
        cooking_time=draft.cooking_time,
        image=image,
        author_id=author_id,
        status=models.RecipeStatus.PENDING,
        created_at=now,
        updated_at=now,
        ingredients=_build_ingredients(draft),
        steps=_build_steps(draft, step_images),
    )
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def update_recipe(
    db: Session,
    db_recipe: models.Recipe,
    draft: schemas.RecipeDraft,
    image: Optional[str],
    step_images: List[Optional[str]],
    status: models.RecipeStatus,
):
    """
    Full replacement of the editable fields of a recipe.
    Ingredient and step rows are replaced wholesale.
    """
    logger.debug(f"Updating recipe {db_recipe.id}")
    db_recipe.title = draft.title
    db_recipe.description = draft.description
    db_recipe.categories = [c.value for c in draft.categories]
    db_recipe.servings = draft.servings
    db_recipe.cooking_time = draft.cooking_time
    db_recipe.image = image
    db_recipe.status = status
    db_recipe.updated_at = _now()

    # delete-orphan cascade removes the previous rows
    db_recipe.ingredients = _build_ingredients(draft)
    db_recipe.steps = _build_steps(draft, step_images)

    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def set_recipe_status(db: Session, db_recipe: models.Recipe, status: models.RecipeStatus):
    db_recipe.status = status
    db_recipe.updated_at = _now()
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def delete_recipe(db: Session, db_recipe: models.Recipe):
    """
    Delete a recipe from the database.
    The cascade options on the model remove its ingredients, steps and every
    favorite pointing at it; dropping the row removes it from the author's
    created_recipes.
    """
    logger.debug(f"Deleting recipe {db_recipe.id}")
    db.delete(db_recipe)
    db.commit()


# --- Favorites CRUD Functions ---
def get_favorite(db: Session, user_id: UUID, recipe_id: UUID):
    return (
        db.query(models.Favorite)
        .filter(models.Favorite.user_id == user_id, models.Favorite.recipe_id == recipe_id)
        .first()
    )


def get_favorite_recipes(db: Session, user_id: UUID):
    return (
        _recipe_query(db)
        .join(models.Favorite, models.Favorite.recipe_id == models.Recipe.id)
        .filter(models.Favorite.user_id == user_id)
        .order_by(models.Favorite.added_at)
        .all()
    )


def count_favorites(db: Session, user_id: UUID) -> int:
    return (
        db.query(func.count(models.Favorite.id))
        .filter(models.Favorite.user_id == user_id)
        .scalar()
    )


def add_favorite(db: Session, user_id: UUID, recipe_id: UUID):
    favorite = models.Favorite(user_id=user_id, recipe_id=recipe_id, added_at=_now())
    db.add(favorite)
    db.commit()
    return favorite


def remove_favorite(db: Session, favorite: models.Favorite):
    db.delete(favorite)
    db.commit()
