"""Cooking tips: parsing provider output and hardcoded fallbacks.

The provider is asked for camelCase JSON (recipeTips, generalTips, ...). The
pydantic tip models accept those keys directly and coerce unknown enum values,
so parsing only has to reject payloads that carry no tips at all.
"""

from typing import Any, List

from pydantic import ValidationError

from src.models.models import (
    BasicCookingTips,
    CommonMistake,
    CommonPitfall,
    DynamicCookingTips,
    FlavorEnhancer,
    FlavorPairing,
    GeneralTip,
    IngredientSecret,
    PresentationTip,
    ProTip,
    RecipeTip,
)
from src.services.dish_types import detect_recipe_type
from src.utils.errors import FormatError


DEFAULT_MAIN_INGREDIENT = "main ingredient"


def parse_dynamic_tips(data: Any) -> DynamicCookingTips:
    """Validate recipe-specific tips JSON.

    Raises:
        FormatError: Not an object, wrong shape, or all five categories empty.
    """
    if not isinstance(data, dict):
        raise FormatError("Invalid tips structure")
    try:
        tips = DynamicCookingTips.model_validate(data)
    except ValidationError as e:
        raise FormatError(f"Invalid tips structure: {e.error_count()} validation errors") from e
    if tips.is_empty():
        raise FormatError("Tips response contained no tips")
    return tips


def parse_basic_tips(data: Any) -> BasicCookingTips:
    """Validate generic ingredient tips JSON. Same rules as parse_dynamic_tips()."""
    if not isinstance(data, dict):
        raise FormatError("Invalid tips structure")
    try:
        tips = BasicCookingTips.model_validate(data)
    except ValidationError as e:
        raise FormatError(f"Invalid tips structure: {e.error_count()} validation errors") from e
    if tips.is_empty():
        raise FormatError("Tips response contained no tips")
    return tips


def build_simple_tips(ingredient_names: List[str]) -> BasicCookingTips:
    """Minimal generic tips, used when no provider is reachable."""
    main_ingredient = ingredient_names[0] if ingredient_names else DEFAULT_MAIN_INGREDIENT
    return BasicCookingTips(
        general_tips=[
            GeneralTip(
                title="Fresh Ingredients",
                content=f"Use fresh {main_ingredient} for the best flavor and texture in your dish.",
                category="preparation",
                importance="high",
                estimated_time="1 minute",
            ),
            GeneralTip(
                title="Proper Seasoning",
                content="Season your ingredients at the right time for maximum flavor absorption.",
                category="flavor",
                importance="high",
                estimated_time="2 minutes",
            ),
        ],
        pro_tips=[
            ProTip(
                title="Temperature Control",
                content="Master your cooking temperature for professional results.",
                category="technique",
            )
        ],
        common_mistakes=[
            CommonMistake(
                mistake="Overcooking ingredients",
                solution="Monitor cooking time closely",
                prevention="Use a timer and check frequently",
            )
        ],
        flavor_pairings=[
            FlavorPairing(
                ingredient=main_ingredient,
                pairs=["herbs", "spices"],
                why="These combinations enhance the natural flavors",
            )
        ],
    )


def build_recipe_specific_fallback(recipe_title: str, ingredient_names: List[str]) -> DynamicCookingTips:
    """Hardcoded recipe-specific tips derived from the first ingredient and the recipe type.

    Every category is populated, so the tips panel is never empty.
    """
    main_ingredient = ingredient_names[0] if ingredient_names else DEFAULT_MAIN_INGREDIENT
    recipe_type = detect_recipe_type(recipe_title)

    return DynamicCookingTips(
        recipe_tips=[
            RecipeTip(
                title=f"Perfect {recipe_type} Technique",
                content=(
                    f"For {recipe_title}, focus on proper timing and temperature control "
                    f"to achieve the best results with {main_ingredient}."
                ),
                category="cooking",
                importance="critical",
                estimated_time="2-3 minutes",
                applies_to_step="Main cooking phase",
            ),
            RecipeTip(
                title="Ingredient Preparation",
                content=(
                    f"Properly prepare your {main_ingredient} by washing, cutting to uniform size, "
                    f"and having all ingredients ready before you start cooking {recipe_title}."
                ),
                category="preparation",
                importance="high",
                estimated_time="5-10 minutes",
                applies_to_step="Preparation phase",
            ),
        ],
        ingredient_secrets=[
            IngredientSecret(
                ingredient=main_ingredient,
                secret=(
                    f"The key to perfect {main_ingredient} in {recipe_title} is to not overcrowd "
                    "the pan and maintain consistent heat."
                ),
                impact="Better texture and more even cooking",
            )
        ],
        flavor_enhancers=[
            FlavorEnhancer(
                technique="Layered Seasoning",
                description=(
                    f"Season {recipe_title} at multiple stages - during prep, cooking, "
                    "and final plating for deeper flavor."
                ),
                result="More complex and well-developed taste",
                timing="Throughout the cooking process",
            )
        ],
        common_pitfalls=[
            CommonPitfall(
                pitfall=f"Rushing the cooking process for {recipe_type}",
                prevention="Allow proper time for each cooking stage and don't turn up the heat too high",
                recovery="Lower heat and extend cooking time if ingredients are browning too quickly",
                why=f"{recipe_type} dishes need time to develop proper flavors and textures",
            )
        ],
        presentation_tips=[
            PresentationTip(
                tip="Color and Texture Balance",
                description=(
                    f"Arrange {recipe_title} with attention to color contrast and varied textures "
                    "for visual appeal."
                ),
            )
        ],
    )
