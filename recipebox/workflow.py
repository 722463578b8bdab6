# workflow.py
# Recipe submission, editing, deletion and moderation.
#
# Multi-step sequences here are not transactional across the blob store and
# the database: blobs are uploaded before the recipe row is committed and
# deleted after it is removed, so a crash in between can leave orphan blobs.

import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipebox import crud, media, models
from recipebox.core.errors import Forbidden, InvalidInput, NotFound, Unauthenticated, UpstreamFailure
from recipebox.core.identity import Identity
from recipebox.media import ImageUpload
from recipebox.moderation import ModerationAction, next_status
from recipebox.validation import RecipePayload, validate_recipe

logger = logging.getLogger(__name__)


def _get_recipe_or_404(db: Session, recipe_id: UUID) -> models.Recipe:
    db_recipe = crud.get_recipe(db, recipe_id=recipe_id)
    if db_recipe is None:
        logger.warning(f"Recipe with ID {recipe_id} not found.")
        raise NotFound("Recipe")
    return db_recipe


def _require_manager(db_recipe: models.Recipe, identity: Identity, action: str) -> None:
    if not identity.can_manage(db_recipe.author_id):
        logger.warning(f"User {identity.user_id} is not authorized to {action} recipe {db_recipe.id}")
        raise Forbidden(f"Not authorized to {action} this recipe")


def _require_admin(identity: Identity) -> None:
    if not identity.is_admin:
        logger.warning(f"User {identity.user_id} attempted an admin-only operation")
        raise Forbidden("Admin privileges required")


def _store_failure(db: Session, store, new_blobs: List[Optional[str]], error: SQLAlchemyError):
    db.rollback()
    logger.error(f"Database error while saving recipe: {error}")
    media.delete_blobs(store, new_blobs)
    return UpstreamFailure()


def create_recipe(
    db: Session,
    store,
    identity: Identity,
    payload: RecipePayload,
    image: Optional[ImageUpload] = None,
    step_images: Optional[Dict[int, ImageUpload]] = None,
) -> models.Recipe:
    """
    Validate and persist a new recipe authored by `identity`.

    The recipe always starts pending, whatever the caller's role.
    """
    draft = validate_recipe(payload)
    if crud.get_user(db, identity.user_id) is None:
        raise Unauthenticated("User not found")

    image_url, step_urls = media.upload_images(store, image, step_images or {}, len(draft.steps))
    step_list = [step_urls.get(index) for index in range(len(draft.steps))]

    try:
        db_recipe = crud.create_recipe(db, draft, identity.user_id, image_url, step_list)
    except SQLAlchemyError as e:
        raise _store_failure(db, store, [image_url, *step_urls.values()], e) from e

    logger.info(f"Recipe {db_recipe.id} submitted by {identity.user_id} and awaiting moderation")
    return db_recipe


def update_recipe(
    db: Session,
    store,
    identity: Identity,
    recipe_id: UUID,
    payload: RecipePayload,
    image: Optional[ImageUpload] = None,
    step_images: Optional[Dict[int, ImageUpload]] = None,
) -> models.Recipe:
    """
    Replace the editable fields of a recipe.

    Images are replaced when a new upload is given, cleared when removal is
    requested and otherwise carried over (step images by index). Edits by a
    non-admin send the recipe back to pending.
    """
    db_recipe = _get_recipe_or_404(db, recipe_id)
    _require_manager(db_recipe, identity, "update")
    draft = validate_recipe(payload)

    new_image, new_step_images = media.upload_images(
        store, image, step_images or {}, len(draft.steps)
    )

    stale = []
    final_image = db_recipe.image
    if new_image:
        stale.append(db_recipe.image)
        final_image = new_image
    elif draft.remove_image:
        stale.append(db_recipe.image)
        final_image = None

    previous = [step.image for step in db_recipe.steps]
    final_steps = []
    for index in range(len(draft.steps)):
        old = previous[index] if index < len(previous) else None
        if index in new_step_images:
            stale.append(old)
            final_steps.append(new_step_images[index])
        else:
            final_steps.append(old)
    stale.extend(previous[len(draft.steps):])

    status = db_recipe.status if identity.is_admin else models.RecipeStatus.PENDING

    try:
        db_recipe = crud.update_recipe(db, db_recipe, draft, final_image, final_steps, status)
    except SQLAlchemyError as e:
        raise _store_failure(db, store, [new_image, *new_step_images.values()], e) from e

    media.delete_blobs(store, stale)
    logger.info(f"Recipe {recipe_id} updated by {identity.user_id}, status is {status.value}")
    return db_recipe


def delete_recipe(db: Session, store, identity: Identity, recipe_id: UUID) -> None:
    db_recipe = _get_recipe_or_404(db, recipe_id)
    _require_manager(db_recipe, identity, "delete")

    media.delete_blobs(store, [db_recipe.image, *(step.image for step in db_recipe.steps)])
    crud.delete_recipe(db, db_recipe)
    logger.info(f"Recipe {recipe_id} deleted by {identity.user_id}")


def moderate_recipe(db: Session, identity: Identity, recipe_id: UUID, action: ModerationAction) -> models.Recipe:
    _require_admin(identity)
    db_recipe = _get_recipe_or_404(db, recipe_id)
    status = next_status(db_recipe.status, action)
    db_recipe = crud.set_recipe_status(db, db_recipe, status)
    logger.info(f"Recipe {recipe_id}: {action.value} by admin {identity.user_id}, now {status.value}")
    return db_recipe


def get_visible_recipe(db: Session, identity: Identity, recipe_id: UUID) -> models.Recipe:
    db_recipe = _get_recipe_or_404(db, recipe_id)
    if db_recipe.status != models.RecipeStatus.PUBLISHED:
        _require_manager(db_recipe, identity, "view")
    return db_recipe


def list_published(db: Session) -> List[models.Recipe]:
    return crud.get_recipes_by_status(db, models.RecipeStatus.PUBLISHED)


def list_by_author(db: Session, identity: Identity, author_id: UUID) -> List[models.Recipe]:
    """
    The author and admins see every status, anyone else only published ones.
    """
    if identity.can_manage(author_id):
        return crud.get_recipes_by_author(db, author_id)
    return crud.get_recipes_by_author(db, author_id, models.RecipeStatus.PUBLISHED)


def list_by_status(db: Session, identity: Identity, status: Optional[str]) -> List[models.Recipe]:
    _require_admin(identity)
    if status is None:
        return crud.get_recipes_by_status(db)
    try:
        parsed = models.RecipeStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in models.RecipeStatus)
        raise InvalidInput(f"status must be one of: {allowed}", field="status")
    return crud.get_recipes_by_status(db, parsed)
