"""Turn a raw provider recipe (parsed JSON dict) into the canonical Recipe.

Validation runs before anything is built, so a rejected payload never yields
a partial Recipe. Everything after validation repairs instead of rejecting:
numbers are clamped, enums defaulted, lists re-shaped.
"""

import random
import re
import string
from datetime import datetime, timezone
from typing import Any, List, Optional

from src.models.models import Difficulty, Recipe, RecipeIngredient
from src.services.dish_types import fallback_image_url
from src.utils.errors import MissingIngredientsError, MissingInstructionsError, MissingTitleError


DEFAULT_DESCRIPTION = "A delicious AI-generated recipe perfect for your kitchen."
DEFAULT_INGREDIENT_NAME = "Unknown ingredient"
DEFAULT_QUANTITY = "1"
DEFAULT_UNIT = "piece"
DEFAULT_COOK_TIME = 30
MAX_COOK_TIME = 480
DEFAULT_SERVINGS = 4
MAX_SERVINGS = 20
DEFAULT_DIETARY_TAGS = ["general"]

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 6
_STEP_PREFIX = re.compile(r"^Step \d+:?\s*", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int(value: Any) -> Optional[int]:
    """Parse leading digits the way a lenient integer parse would ("25 min" -> 25, "abc" -> None)."""
    if value is None or isinstance(value, bool):
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def validate_cook_time(value: Any) -> int:
    minutes = _parse_int(value)
    if minutes is None or minutes < 1:
        return DEFAULT_COOK_TIME
    return min(minutes, MAX_COOK_TIME)


def validate_servings(value: Any) -> int:
    count = _parse_int(value)
    if count is None or count < 1:
        return DEFAULT_SERVINGS
    return min(count, MAX_SERVINGS)


def validate_difficulty(value: Any) -> Difficulty:
    normalized = str(value).strip().lower()
    try:
        return Difficulty(normalized)
    except ValueError:
        return Difficulty.MEDIUM


def format_ingredient(item: Any) -> RecipeIngredient:
    """A bare string becomes {name, "1", "piece"}; an object gets its missing fields defaulted."""
    if isinstance(item, str):
        return RecipeIngredient(name=item.strip(), quantity=DEFAULT_QUANTITY, unit=DEFAULT_UNIT)

    fields = item if isinstance(item, dict) else {}
    name = fields.get("name")
    quantity = fields.get("quantity")
    unit = fields.get("unit")
    return RecipeIngredient(
        name=str(name).strip() if name else DEFAULT_INGREDIENT_NAME,
        quantity=str(quantity).strip() if quantity else DEFAULT_QUANTITY,
        unit=str(unit).strip() if unit else DEFAULT_UNIT,
    )


def format_instructions(instructions: List[Any]) -> List[str]:
    """Strip any existing "Step N:" prefix and renumber from 1. Idempotent."""
    formatted = []
    for index, instruction in enumerate(instructions):
        clean = _STEP_PREFIX.sub("", str(instruction).strip()).strip()
        formatted.append(f"Step {index + 1}: {clean}")
    return formatted


def generate_recipe_id(source: str, now: datetime, rng: random.Random) -> str:
    """{source}_{epochMillis}_{6 random base-36 chars}"""
    epoch_millis = int(now.timestamp() * 1000)
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{source}_{epoch_millis}_{suffix}"


def validate_raw_recipe(raw: Any) -> None:
    """Reject payloads that cannot become a Recipe.

    Raises:
        MissingTitleError: Not a dict, or title missing/blank.
        MissingIngredientsError: ingredients missing, not a list, or empty.
        MissingInstructionsError: instructions missing, not a list, or empty.
    """
    if not isinstance(raw, dict):
        raise MissingTitleError()

    title = raw.get("title")
    if title is None or not str(title).strip():
        raise MissingTitleError()

    ingredients = raw.get("ingredients")
    if not isinstance(ingredients, list) or not ingredients:
        raise MissingIngredientsError()

    instructions = raw.get("instructions")
    if not isinstance(instructions, list) or not instructions:
        raise MissingInstructionsError()


def format_recipe(
    raw: Any,
    source: str,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Recipe:
    """Validate and repair a raw provider recipe into a Recipe.

    Accepts both camelCase (cookTime, dietaryTags) and snake_case
    (cook_time_minutes, dietary_tags) keys, since improve_recipe() sends a
    dumped Recipe back to the provider.

    Args:
        raw: Parsed JSON from the normalizer.
        source: Tag used as the id prefix (e.g. "groq").
        now: Creation time, defaults to the current UTC time.
        rng: Random source for the id suffix.

    Returns:
        Recipe: Fully populated, with a non-empty image.

    Raises:
        SchemaError subclasses: See validate_raw_recipe().
    """
    validate_raw_recipe(raw)

    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()

    title = str(raw["title"]).strip()
    ingredients = [format_ingredient(item) for item in raw["ingredients"]]
    ingredient_names = [ingredient.name for ingredient in ingredients]

    description = raw.get("description")
    image = raw.get("image")
    dietary_tags = raw.get("dietaryTags", raw.get("dietary_tags"))
    recipe_id = raw.get("id")

    return Recipe(
        id=str(recipe_id) if recipe_id else generate_recipe_id(source, now, rng),
        title=title,
        description=str(description).strip() if description else DEFAULT_DESCRIPTION,
        image=str(image) if image else fallback_image_url(title, ingredient_names),
        cook_time_minutes=validate_cook_time(raw.get("cookTime", raw.get("cook_time_minutes"))),
        difficulty=validate_difficulty(raw.get("difficulty")),
        servings=validate_servings(raw.get("servings")),
        ingredients=ingredients,
        instructions=format_instructions(raw["instructions"]),
        dietary_tags=[str(tag) for tag in dietary_tags] if isinstance(dietary_tags, list) else list(DEFAULT_DIETARY_TAGS),
        created_at=now,
    )
