# models.py
# Defines the SQLAlchemy ORM models for the database tables.

import uuid
from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, String, Text, Enum, DateTime, Float, JSON,
    UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid
from recipebox.db.session import Base
import enum


class RecipeStatus(str, enum.Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class RecipeCategory(str, enum.Enum):
    BREAKFAST = "Завтрак"
    LUNCH = "Обед"
    DINNER = "Ужин"
    CHINESE = "Китайская кухня"
    ITALIAN = "Итальянская кухня"
    RUSSIAN = "Русская кухня"
    HOT_DISH = "Горячее блюдо"
    SNACKS = "Закуски"
    DESSERT = "Десерт"
    DRINKS = "Напитки"


class IngredientUnit(str, enum.Enum):
    GRAM = "г"
    KILOGRAM = "кг"
    MILLILITER = "мл"
    LITER = "л"
    PIECE = "шт"
    GLASS = "ст"
    TABLESPOON = "стл"
    TEASPOON = "чл"
    TO_TASTE = "пв"


class User(Base):
    """
    User model for the 'users' table.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    username = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())

    # A recipe's author reference doubles as its entry in createdRecipes
    created_recipes = relationship(
        "Recipe", back_populates="author", order_by="Recipe.created_at"
    )
    favorites = relationship(
        "Favorite", back_populates="user", cascade="all, delete"
    )


class Recipe(Base):
    """
    Recipe model for the 'recipes' table.
    """
    __tablename__ = "recipes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

    title = Column(String(50), index=True, nullable=False)
    description = Column(Text, nullable=False)
    # List of RecipeCategory values
    categories = Column(JSON, nullable=False, default=list)
    servings = Column(Integer, nullable=False)
    cooking_time = Column(Integer, nullable=False)
    image = Column(String, nullable=True)

    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
    status = Column(Enum(RecipeStatus), nullable=False, default=RecipeStatus.PENDING, index=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    author = relationship("User", back_populates="created_recipes")

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )

    steps = relationship(
        "RecipeStep",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeStep.position",
    )

    favorited_by = relationship("Favorite", back_populates="recipe", cascade="all, delete")


class RecipeIngredient(Base):
    """
    One row of the parallel ingredient / quantity / unit arrays.
    """
    __tablename__ = "recipe_ingredients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id"), index=True)
    position = Column(Integer, nullable=False)

    name = Column(String(50), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(Enum(IngredientUnit), nullable=False)

    recipe = relationship("Recipe", back_populates="ingredients")


class RecipeStep(Base):
    """
    A cooking step for a recipe, optionally illustrated.
    """
    __tablename__ = "recipe_steps"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id"), index=True)
    position = Column(Integer, nullable=False)

    description = Column(Text, nullable=False)
    image = Column(String, nullable=True)

    recipe = relationship("Recipe", back_populates="steps")


class Favorite(Base):
    """
    Association between a user and a recipe they favorited.
    """
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "recipe_id", name="uq_favorite_user_recipe"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id"), index=True, nullable=False)
    added_at = Column(DateTime, default=func.now())

    user = relationship("User", back_populates="favorites")
    recipe = relationship("Recipe", back_populates="favorited_by")


class AdminElevation(Base):
    """
    Audit trail of admin session elevation attempts.
    """
    __tablename__ = "admin_elevations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
    granted = Column(Boolean, nullable=False)
    reason = Column(String, nullable=True)
    client_ip = Column(String, nullable=True)
    created_at = Column(DateTime, default=func.now())
