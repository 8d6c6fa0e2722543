"""Data models for the recipe orchestration layer.

Defines Pydantic models for generation requests, the canonical Recipe and
the two cooking-tips shapes. All models use Pydantic v2.

Raw provider output (RawProviderRecipe) is deliberately NOT a model: it is a
plain dict until src.services.formatter turns it into a Recipe.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Ingredient(BaseModel):
    """Pantry item added by the user.

    Immutable once created; the caller assigns the id. Duplicate names are allowed.
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: Annotated[str, Field(min_length=1, description="Caller-assigned unique id")]
    name: Annotated[str, Field(min_length=1, max_length=200, description="Ingredient name")]
    quantity: Annotated[Optional[str], Field(description="Free-form amount, e.g. '2' or '1/2'")] = None
    unit: Annotated[Optional[str], Field(description="Unit for quantity, e.g. 'cup'")] = None
    added_at: Annotated[
        datetime,
        Field(default_factory=lambda: datetime.now(timezone.utc), description="When the item was added"),
    ]


class GenerationConstraints(BaseModel):
    """User constraints for a single recipe generation."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    dietary_restrictions: Annotated[
        List[str], Field(default_factory=list, description="e.g. vegetarian, gluten-free")
    ]
    max_time_minutes: Annotated[int, Field(gt=0, description="Upper bound on total cooking time")] = 60
    difficulty: Annotated[Difficulty, Field(description="Requested difficulty")] = Difficulty.MEDIUM
    servings: Annotated[int, Field(gt=0, description="Number of portions")] = 4


class GenerationRequest(GenerationConstraints):
    """Ingredient names plus constraints, built fresh for each generation call."""

    ingredient_names: Annotated[
        List[str], Field(min_length=1, description="Ordered, non-empty list of ingredient names")
    ]

    @classmethod
    def build(
        cls, ingredient_names: List[str], constraints: Optional[GenerationConstraints] = None
    ) -> "GenerationRequest":
        constraints = constraints or GenerationConstraints()
        return cls(ingredient_names=ingredient_names, **constraints.model_dump())


class RecipeIngredient(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    quantity: str
    unit: str


class Recipe(BaseModel):
    """Canonical recipe, the only recipe shape the rest of the application sees.

    Built once by format_recipe() and treated as an immutable value afterwards.
    Image replacement goes through model_copy(update={"image": ...}).
    """

    model_config = ConfigDict(frozen=True)

    id: Annotated[str, Field(min_length=1, description="Source tag + epoch millis + random suffix")]
    title: Annotated[str, Field(min_length=1)]
    description: str
    image: Annotated[str, Field(min_length=1, description="Generated or fallback image URL, never empty")]
    cook_time_minutes: Annotated[int, Field(ge=1, le=480)]
    difficulty: Difficulty
    servings: Annotated[int, Field(ge=1, le=20)]
    ingredients: List[RecipeIngredient]
    instructions: List[str]
    dietary_tags: List[str]
    created_at: datetime

    @property
    def ingredient_names(self) -> List[str]:
        return [ingredient.name for ingredient in self.ingredients]


class ChatMessage(BaseModel):
    """One role-tagged message of a chat-completions request."""

    role: Literal["system", "user", "assistant"]
    content: str


# ============================================================================
# Cooking tips
# ============================================================================


def _coerce_choice(value, allowed: tuple, default: str) -> str:
    """Lower-case a provider value and fall back to default when it is not allowed."""
    normalized = str(value).strip().lower() if value is not None else ""
    return normalized if normalized in allowed else default


class _TipModel(BaseModel):
    """Base for tip records: accepts the provider's camelCase keys, numbers as text, and ignores extras."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        extra="ignore",
        frozen=True,
    )


class RecipeTip(_TipModel):
    title: str = ""
    content: str = ""
    category: Literal["preparation", "cooking", "flavor", "plating"] = "cooking"
    importance: Literal["critical", "high", "medium"] = "medium"
    estimated_time: str = ""
    applies_to_step: str = ""

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v):
        return _coerce_choice(v, ("preparation", "cooking", "flavor", "plating"), "cooking")

    @field_validator("importance", mode="before")
    @classmethod
    def normalize_importance(cls, v):
        return _coerce_choice(v, ("critical", "high", "medium"), "medium")


class IngredientSecret(_TipModel):
    ingredient: str = ""
    secret: str = ""
    impact: str = ""


class FlavorEnhancer(_TipModel):
    technique: str = ""
    description: str = ""
    result: str = ""
    timing: str = ""


class CommonPitfall(_TipModel):
    pitfall: str = ""
    prevention: str = ""
    recovery: str = ""
    why: str = ""


class PresentationTip(_TipModel):
    tip: str = ""
    description: str = ""


class DynamicCookingTips(_TipModel):
    """Recipe-specific tips in five categories."""

    recipe_tips: List[RecipeTip] = Field(default_factory=list)
    ingredient_secrets: List[IngredientSecret] = Field(default_factory=list)
    flavor_enhancers: List[FlavorEnhancer] = Field(default_factory=list)
    common_pitfalls: List[CommonPitfall] = Field(default_factory=list)
    presentation_tips: List[PresentationTip] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (
                self.recipe_tips,
                self.ingredient_secrets,
                self.flavor_enhancers,
                self.common_pitfalls,
                self.presentation_tips,
            )
        )


class GeneralTip(_TipModel):
    title: str = ""
    content: str = ""
    category: Literal["preparation", "cooking", "flavor", "storage"] = "cooking"
    importance: Literal["high", "medium", "low"] = "medium"
    estimated_time: str = ""

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v):
        return _coerce_choice(v, ("preparation", "cooking", "flavor", "storage"), "cooking")

    @field_validator("importance", mode="before")
    @classmethod
    def normalize_importance(cls, v):
        return _coerce_choice(v, ("high", "medium", "low"), "medium")


class ProTip(_TipModel):
    title: str = ""
    content: str = ""
    category: Literal["technique", "flavor", "presentation"] = "technique"
    chef_secret: Literal[True] = True

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v):
        return _coerce_choice(v, ("technique", "flavor", "presentation"), "technique")

    @field_validator("chef_secret", mode="before")
    @classmethod
    def always_secret(cls, v):
        return True


class CommonMistake(_TipModel):
    mistake: str = ""
    solution: str = ""
    prevention: str = ""


class FlavorPairing(_TipModel):
    ingredient: str = ""
    pairs: List[str] = Field(default_factory=list)
    why: str = ""

    @field_validator("pairs", mode="before")
    @classmethod
    def split_pairs(cls, v):
        if isinstance(v, str):
            return [pair.strip() for pair in v.split(",") if pair.strip()]
        return v


class BasicCookingTips(_TipModel):
    """Generic, title-agnostic ingredient tips in four categories."""

    general_tips: List[GeneralTip] = Field(default_factory=list)
    pro_tips: List[ProTip] = Field(default_factory=list)
    common_mistakes: List[CommonMistake] = Field(default_factory=list)
    flavor_pairings: List[FlavorPairing] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any((self.general_tips, self.pro_tips, self.common_mistakes, self.flavor_pairings))


CookingTips = Union[DynamicCookingTips, BasicCookingTips]


class TipSource(str, Enum):
    """Which level of the tips fallback chain produced a result."""

    RECIPE_SPECIFIC = "recipe_specific"
    GENERIC = "generic"
    FALLBACK = "fallback"


class RecipeEnhancements(BaseModel):
    model_config = ConfigDict(frozen=True)

    cooking_tips: CookingTips
    source: TipSource
