# schemas.py
# Defines the Pydantic models (schemas) for data validation and serialization.

from pydantic import BaseModel, EmailStr, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Any
from uuid import UUID
from datetime import datetime
from recipebox.models import RecipeCategory, IngredientUnit, RecipeStatus

# Wire format is camelCase; Python attributes stay snake_case.
camel_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# --- User Schemas ---
class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    code: Optional[str] = None


class ElevateRequest(BaseModel):
    code: str = Field(..., min_length=1)


class UserProfile(BaseModel):
    id: UUID
    username: str
    email: EmailStr
    is_admin: bool
    recipe_count: int
    favorites_count: int
    favorites: List[UUID]

    model_config = camel_config

    @model_validator(mode='before')
    @classmethod
    def transform_from_orm(cls, data: Any) -> Any:
        if hasattr(data, "hashed_password"):  # Is an ORM object
            return {
                "id": data.id,
                "username": data.username,
                "email": data.email,
                "is_admin": bool(data.is_admin),
                "recipe_count": len(data.created_recipes),
                "favorites_count": len(data.favorites),
                "favorites": [f.recipe_id for f in data.favorites],
            }
        return data


# --- Token Schemas ---
class RegisterResponse(BaseModel):
    token: str
    user_id: UUID

    model_config = camel_config


class LoginResponse(RegisterResponse):
    is_admin: bool


# --- Recipe Schemas ---
class RecipeStep(BaseModel):
    description: str
    image: Optional[str] = None

    model_config = camel_config


class RecipeDraft(BaseModel):
    """
    A recipe payload that already passed `recipebox.validation`.
    """
    title: str
    description: str
    categories: List[RecipeCategory]
    servings: int
    cooking_time: int
    ingredients: List[str]
    ingredient_quantities: List[float]
    ingredient_units: List[IngredientUnit]
    steps: List[RecipeStep]
    remove_image: bool = False

    model_config = camel_config


class Recipe(BaseModel):
    id: UUID
    title: str
    description: str
    categories: List[RecipeCategory]
    servings: int
    cooking_time: int
    ingredients: List[str]
    ingredient_quantities: List[float]
    ingredient_units: List[IngredientUnit]
    image: Optional[str] = None
    steps: List[RecipeStep]
    author: UUID
    status: RecipeStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = camel_config

    @model_validator(mode='before')
    @classmethod
    def transform_from_orm(cls, data: Any) -> Any:
        if hasattr(data, "author_id"):  # Is an ORM object
            return {
                "id": data.id,
                "title": data.title,
                "description": data.description,
                "categories": data.categories or [],
                "servings": data.servings,
                "cooking_time": data.cooking_time,
                "ingredients": [i.name for i in data.ingredients],
                "ingredient_quantities": [i.quantity for i in data.ingredients],
                "ingredient_units": [i.unit for i in data.ingredients],
                "image": data.image,
                "steps": [
                    {"description": s.description, "image": s.image} for s in data.steps
                ],
                "author": data.author_id,
                "status": data.status,
                "created_at": data.created_at,
                "updated_at": data.updated_at,
            }
        return data


class FavoritesCount(BaseModel):
    favorites_count: int

    model_config = camel_config


class Message(BaseModel):
    message: str
