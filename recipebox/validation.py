# validation.py
# Fail-fast validation of incoming recipe payloads.
#
# Checks run in a fixed order and stop at the first failure:
#   1. required fields are present
#   2. field types and ranges
#   3. ingredient arrays have equal length
#   4. per-element checks (lengths, enum membership, "to taste" => quantity 0)

import json
from typing import Any, Dict, List, Mapping, Union

from recipebox import schemas
from recipebox.core.errors import InvalidInput
from recipebox.models import IngredientUnit, RecipeCategory


TITLE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 1000
INGREDIENT_NAME_MAX_LENGTH = 50
STEP_DESCRIPTION_MAX_LENGTH = 1000
SERVINGS_RANGE = (1, 100)
COOKING_TIME_RANGE = (1, 100000)
QUANTITY_RANGE = (0, 1000)

REQUIRED_FIELDS = (
    "title",
    "description",
    "categories",
    "servings",
    "cookingTime",
    "ingredients",
    "ingredientQuantities",
    "ingredientUnits",
    "steps",
)

# A multipart form delivers the payload as raw JSON text, a JSON body as an
# already parsed object.
RecipePayload = Union[str, bytes, Mapping[str, Any]]

_CATEGORY_VALUES = {c.value for c in RecipeCategory}
_UNIT_VALUES = {u.value for u in IngredientUnit}


def normalize_payload(payload: RecipePayload) -> Dict[str, Any]:
    """
    Turn either form of the payload into a plain dict.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            raise InvalidInput("recipeData is not valid JSON", field="recipeData")
    if not isinstance(payload, Mapping):
        raise InvalidInput("recipeData must be a JSON object", field="recipeData")
    return dict(payload)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_integer(data: Dict[str, Any], field: str, bounds) -> int:
    value = data[field]
    if isinstance(value, bool):
        raise InvalidInput(f"{field} must be an integer", field=field)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidInput(f"{field} must be an integer", field=field)
    if not isinstance(value, int):
        raise InvalidInput(f"{field} must be an integer", field=field)
    low, high = bounds
    if not low <= value <= high:
        raise InvalidInput(f"{field} must be between {low} and {high}", field=field)
    return value


def _as_text(data: Dict[str, Any], field: str, max_length: int) -> str:
    value = data[field]
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string", field=field)
    value = value.strip()
    if len(value) > max_length:
        raise InvalidInput(f"{field} must not exceed {max_length} characters", field=field)
    return value


def _as_list(data: Dict[str, Any], field: str) -> List[Any]:
    value = data[field]
    if not isinstance(value, list):
        raise InvalidInput(f"{field} must be an array", field=field)
    return value


def _as_flag(data: Dict[str, Any], field: str) -> bool:
    value = data.get(field, False)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def validate_recipe(payload: RecipePayload) -> schemas.RecipeDraft:
    """
    Validate a recipe payload and return it as a RecipeDraft.

    Raises InvalidInput naming the first failing field or element.
    """
    data = normalize_payload(payload)

    # 1. presence
    for field in REQUIRED_FIELDS:
        if field not in data or _is_missing(data[field]):
            raise InvalidInput(f"{field} is required", field=field)

    # 2. types and ranges
    title = _as_text(data, "title", TITLE_MAX_LENGTH)
    if not title:
        raise InvalidInput("title is required", field="title")
    description = _as_text(data, "description", DESCRIPTION_MAX_LENGTH)
    categories = _as_list(data, "categories")
    if not categories:
        raise InvalidInput("categories must contain at least one category", field="categories")
    servings = _as_integer(data, "servings", SERVINGS_RANGE)
    cooking_time = _as_integer(data, "cookingTime", COOKING_TIME_RANGE)
    ingredients = _as_list(data, "ingredients")
    quantities = _as_list(data, "ingredientQuantities")
    units = _as_list(data, "ingredientUnits")
    steps = _as_list(data, "steps")

    # 3. parallel arrays
    if not (len(ingredients) == len(quantities) == len(units)):
        raise InvalidInput(
            "ingredients, ingredientQuantities and ingredientUnits must have the same length "
            f"(got {len(ingredients)}, {len(quantities)}, {len(units)})",
            field="ingredients",
        )

    # 4. elements
    unique_categories = []
    for index, category in enumerate(categories):
        if not isinstance(category, str) or category not in _CATEGORY_VALUES:
            raise InvalidInput(f"categories[{index}]: unknown category '{category}'", field="categories")
        if category not in unique_categories:
            unique_categories.append(category)

    clean_quantities = []
    for index, (name, quantity, unit) in enumerate(zip(ingredients, quantities, units)):
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput(f"ingredients[{index}] must be a non-empty string", field="ingredients")
        if len(name.strip()) > INGREDIENT_NAME_MAX_LENGTH:
            raise InvalidInput(
                f"ingredients[{index}] must not exceed {INGREDIENT_NAME_MAX_LENGTH} characters",
                field="ingredients",
            )
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise InvalidInput(f"ingredientQuantities[{index}] must be a number", field="ingredientQuantities")
        low, high = QUANTITY_RANGE
        if not low <= quantity <= high:
            raise InvalidInput(
                f"ingredientQuantities[{index}] must be between {low} and {high}",
                field="ingredientQuantities",
            )
        if not isinstance(unit, str) or unit not in _UNIT_VALUES:
            raise InvalidInput(f"ingredientUnits[{index}]: unknown unit '{unit}'", field="ingredientUnits")
        if unit == IngredientUnit.TO_TASTE.value and quantity != 0:
            raise InvalidInput(
                f"ingredientQuantities[{index}] must be 0 when the unit is '{IngredientUnit.TO_TASTE.value}' (to taste)",
                field="ingredientQuantities",
            )
        clean_quantities.append(float(quantity))

    clean_steps = []
    for index, step in enumerate(steps):
        if not isinstance(step, Mapping):
            raise InvalidInput(f"steps[{index}] must be an object", field="steps")
        text = step.get("description")
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput(f"steps[{index}].description is required", field="steps")
        if len(text.strip()) > STEP_DESCRIPTION_MAX_LENGTH:
            raise InvalidInput(
                f"steps[{index}].description must not exceed {STEP_DESCRIPTION_MAX_LENGTH} characters",
                field="steps",
            )
        # Step images only ever come from uploads or the stored recipe
        clean_steps.append(schemas.RecipeStep(description=text.strip()))

    return schemas.RecipeDraft(
        title=title,
        description=description,
        categories=[RecipeCategory(c) for c in unique_categories],
        servings=servings,
        cooking_time=cooking_time,
        ingredients=[name.strip() for name in ingredients],
        ingredient_quantities=clean_quantities,
        ingredient_units=[IngredientUnit(u) for u in units],
        steps=clean_steps,
        remove_image=_as_flag(data, "removeImage"),
    )
