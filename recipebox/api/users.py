# api/users.py
# User profiles and the favorites ledger.

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recipebox import crud, favorites, schemas
from recipebox.api.auth import get_current_identity
from recipebox.core.errors import Forbidden, NotFound
from recipebox.core.identity import Identity
from recipebox.db.session import get_db

router = APIRouter()

logger = logging.getLogger(__name__)


def _get_user_for(db: Session, identity: Identity, user_id: UUID):
    if not identity.can_manage(user_id):
        logger.warning(f"User {identity.user_id} is not authorized to view user {user_id}")
        raise Forbidden("Not authorized to view this user")
    db_user = crud.get_user(db, user_id)
    if db_user is None:
        raise NotFound("User")
    return db_user


@router.get("/{user_id}", response_model=schemas.UserProfile)
def read_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Profile summary. Users can view themselves; admins can view anyone.
    """
    return _get_user_for(db, identity, user_id)


@router.get("/{user_id}/recipes", response_model=List[schemas.Recipe])
def read_user_recipes(
    user_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Every recipe the user created, whatever its status.
    """
    _get_user_for(db, identity, user_id)
    return crud.get_recipes_by_author(db, user_id)


# --- Favorites ---

@router.get("/{user_id}/favorites", response_model=List[schemas.Recipe])
def read_favorites(
    user_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return favorites.list_favorites(db, identity, user_id)


@router.get("/{user_id}/favorites/count", response_model=schemas.FavoritesCount)
def read_favorites_count(
    user_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return {"favorites_count": favorites.count_favorites(db, identity, user_id)}


@router.put("/{user_id}/favorites/{recipe_id}", response_model=schemas.FavoritesCount)
def add_favorite(
    user_id: UUID,
    recipe_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Add a published recipe to the user's favorites.
    """
    return {"favorites_count": favorites.add_favorite(db, identity, user_id, recipe_id)}


@router.delete("/{user_id}/favorites/{recipe_id}", response_model=schemas.FavoritesCount)
def remove_favorite(
    user_id: UUID,
    recipe_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return {"favorites_count": favorites.remove_favorite(db, identity, user_id, recipe_id)}
