# api/recipes.py
# Handles all API endpoints related to recipes and their moderation.

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

# Import local modules
from recipebox import schemas
from recipebox import workflow
from recipebox.api.auth import get_current_identity
from recipebox.core.errors import InvalidInput
from recipebox.core.identity import Identity
from recipebox.db.session import get_db
from recipebox.media import ImageUpload
from recipebox.moderation import ModerationAction
from recipebox.storage import get_blob_store
from recipebox.validation import RecipePayload, normalize_payload

# Create an API router
router = APIRouter()

# Get a logger instance
logger = logging.getLogger(__name__)

STEP_IMAGE_FIELD = "stepImages"
_INDEXED_STEP_IMAGE = re.compile(rf"{STEP_IMAGE_FIELD}\[(\d+)\]")


@dataclass
class RecipeSubmission:
    payload: RecipePayload
    image: Optional[ImageUpload] = None
    step_images: Dict[int, ImageUpload] = field(default_factory=dict)


async def _to_image(value) -> Optional[ImageUpload]:
    if not isinstance(value, UploadFile) or not value.filename:
        return None
    data = await value.read()
    return ImageUpload(filename=value.filename, content_type=value.content_type, data=data)


async def read_submission(request: Request) -> RecipeSubmission:
    """
    Accepts either a multipart form (JSON text in `recipeData`, files in
    `image` and `stepImages[<index>]`) or a plain JSON body.

    Step images may also be sent as repeated `stepImages` fields, matched to
    steps in the order they appear.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            return RecipeSubmission(payload=await request.json())
        except ValueError:
            raise InvalidInput("Request body is not valid JSON")

    if not content_type.startswith("multipart/form-data"):
        raise InvalidInput("Expected a multipart/form-data or application/json body")

    form = await request.form()
    raw = form.get("recipeData")
    if raw is None:
        raise InvalidInput("recipeData is required", field="recipeData")
    if isinstance(raw, UploadFile):
        raw = await raw.read()

    submission = RecipeSubmission(payload=raw, image=await _to_image(form.get("image")))
    remove_flag = form.get("removeImage")
    if remove_flag is not None:
        # Folded into the payload so validation reads a single source
        data = normalize_payload(raw)
        data.setdefault("removeImage", remove_flag)
        submission.payload = data

    sequential = 0
    for key, value in form.multi_items():
        match = _INDEXED_STEP_IMAGE.fullmatch(key)
        if match:
            index = int(match.group(1))
        elif key == STEP_IMAGE_FIELD:
            index = sequential
            sequential += 1
        else:
            continue
        upload = await _to_image(value)
        if upload is None:
            continue
        if index in submission.step_images:
            field_name = f"{STEP_IMAGE_FIELD}[{index}]"
            raise InvalidInput(f"{field_name} was sent more than once", field=field_name)
        submission.step_images[index] = upload
    return submission


@router.post("", response_model=schemas.Recipe, status_code=status.HTTP_201_CREATED)
async def create_recipe(
        request: Request,
        db: Session = Depends(get_db),
        store=Depends(get_blob_store),
        identity: Identity = Depends(get_current_identity),
):
    """
    Submit a new recipe. It is stored as pending until an admin approves it.
    """
    logger.debug(f"User {identity.user_id} is creating a new recipe.")
    submission = await read_submission(request)
    return await run_in_threadpool(
        workflow.create_recipe,
        db, store, identity, submission.payload, submission.image, submission.step_images,
    )


@router.get("/public", response_model=List[schemas.Recipe])
def read_published_recipes(db: Session = Depends(get_db)):
    """
    Retrieve every published recipe. No authentication required.
    """
    logger.debug("Fetching published recipes.")
    return workflow.list_published(db)


@router.get("/user/all", response_model=List[schemas.Recipe])
def read_recipes_by_status(
        status_filter: Optional[str] = Query(
            default=None,
            alias="status",
            description="One of pending, published, rejected. Omit for every recipe.",
        ),
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
):
    """
    Retrieve recipes filtered by moderation status. Admin only.
    """
    logger.debug(f"Admin listing recipes with status={status_filter}")
    return workflow.list_by_status(db, identity, status_filter)


@router.get("/user/{user_id}", response_model=List[schemas.Recipe])
def read_recipes_by_author(
        user_id: UUID,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
):
    """
    Retrieve recipes written by a user. Other users only see the published ones.
    """
    logger.debug(f"Fetching recipes of author {user_id}")
    return workflow.list_by_author(db, identity, user_id)


@router.get("/{recipe_id}", response_model=schemas.Recipe)
def read_recipe(
        recipe_id: UUID,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
):
    """
    Retrieve a single recipe by its ID.
    Unpublished recipes are only visible to their author and admins.
    """
    logger.debug(f"Fetching recipe with ID: {recipe_id}")
    return workflow.get_visible_recipe(db, identity, recipe_id)


@router.put("/{recipe_id}", response_model=schemas.Recipe)
async def update_recipe(
        recipe_id: UUID,
        request: Request,
        db: Session = Depends(get_db),
        store=Depends(get_blob_store),
        identity: Identity = Depends(get_current_identity),
):
    """
    Update a recipe. Only the author or an admin can perform this action.
    """
    logger.debug(f"User {identity.user_id} is updating recipe with ID: {recipe_id}")
    submission = await read_submission(request)
    return await run_in_threadpool(
        workflow.update_recipe,
        db, store, identity, recipe_id, submission.payload, submission.image, submission.step_images,
    )


@router.delete("/{recipe_id}", response_model=schemas.Message)
def delete_recipe(
        recipe_id: UUID,
        db: Session = Depends(get_db),
        store=Depends(get_blob_store),
        identity: Identity = Depends(get_current_identity),
):
    """
    Delete a recipe. Only the author or an admin can perform this action.
    """
    logger.debug(f"User {identity.user_id} is deleting recipe with ID: {recipe_id}")
    workflow.delete_recipe(db, store, identity, recipe_id)
    return {"message": "Recipe deleted"}


# --- Moderation Endpoints ---

@router.put("/{recipe_id}/approve", response_model=schemas.Recipe)
def approve_recipe(
        recipe_id: UUID,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
):
    """
    Publish a pending or rejected recipe. Admin only.
    """
    return workflow.moderate_recipe(db, identity, recipe_id, ModerationAction.APPROVE)


@router.put("/{recipe_id}/reject", response_model=schemas.Recipe)
def reject_recipe(
        recipe_id: UUID,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
):
    """
    Reject a pending recipe. Admin only.
    """
    return workflow.moderate_recipe(db, identity, recipe_id, ModerationAction.REJECT)


@router.put("/{recipe_id}/reconsider", response_model=schemas.Recipe)
def reconsider_recipe(
        recipe_id: UUID,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
):
    """
    Send a rejected recipe back to pending. Admin only.
    """
    return workflow.moderate_recipe(db, identity, recipe_id, ModerationAction.RECONSIDER)
