# favorites.py
# Per-user favorites ledger.

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recipebox import crud, models
from recipebox.core.errors import Conflict, Forbidden, NotFound
from recipebox.core.identity import Identity

logger = logging.getLogger(__name__)


def _get_owner(db: Session, identity: Identity, user_id: UUID) -> models.User:
    if not identity.can_manage(user_id):
        logger.warning(f"User {identity.user_id} is not authorized to access favorites of {user_id}")
        raise Forbidden("Not authorized to access these favorites")
    db_user = crud.get_user(db, user_id)
    if db_user is None:
        raise NotFound("User")
    return db_user


def list_favorites(db: Session, identity: Identity, user_id: UUID):
    """
    Favorited recipes the caller may read. A favorite sent back to moderation
    stays in the set but is hidden until it is published again.
    """
    _get_owner(db, identity, user_id)
    return [
        recipe
        for recipe in crud.get_favorite_recipes(db, user_id)
        if recipe.status == models.RecipeStatus.PUBLISHED or identity.can_manage(recipe.author_id)
    ]


def count_favorites(db: Session, identity: Identity, user_id: UUID) -> int:
    _get_owner(db, identity, user_id)
    return crud.count_favorites(db, user_id)


def add_favorite(db: Session, identity: Identity, user_id: UUID, recipe_id: UUID) -> int:
    """
    Add a published recipe to the user's favorites and return the new count.
    """
    _get_owner(db, identity, user_id)
    db_recipe = crud.get_recipe(db, recipe_id)
    if db_recipe is None or db_recipe.status != models.RecipeStatus.PUBLISHED:
        raise NotFound("Recipe")
    if crud.get_favorite(db, user_id, recipe_id) is not None:
        raise Conflict("Recipe is already in favorites")
    try:
        crud.add_favorite(db, user_id, recipe_id)
    except IntegrityError:
        # Lost a race against an identical request
        db.rollback()
        raise Conflict("Recipe is already in favorites")
    logger.debug(f"User {user_id} favorited recipe {recipe_id}")
    return crud.count_favorites(db, user_id)


def remove_favorite(db: Session, identity: Identity, user_id: UUID, recipe_id: UUID) -> int:
    _get_owner(db, identity, user_id)
    favorite = crud.get_favorite(db, user_id, recipe_id)
    if favorite is None:
        raise NotFound("Recipe in favorites")
    crud.remove_favorite(db, favorite)
    logger.debug(f"User {user_id} removed recipe {recipe_id} from favorites")
    return crud.count_favorites(db, user_id)
