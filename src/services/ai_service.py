"""AIService: the single entry point the application uses for AI features.

Coordinates the text client, normalizer, formatter and image client:

    generate_recipe():
        VALIDATING_INPUT → AWAITING_PROVIDER → NORMALIZING → FORMATTING
        → ENHANCING_IMAGE → DONE

Any failure before ENHANCING_IMAGE is re-raised as RecipeGenerationError with
a user-presentable message. Image enhancement and cooking tips never fail the
caller: they degrade to a stock photograph and hardcoded tips respectively.
"""

import asyncio
import inspect
import random
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set, Tuple, Union

from src.models.models import (
    BasicCookingTips,
    DynamicCookingTips,
    GenerationConstraints,
    GenerationRequest,
    Ingredient,
    Recipe,
    RecipeEnhancements,
    TipSource,
)
from src.prompts.prompts import (
    get_basic_tips_messages,
    get_dynamic_tips_messages,
    get_improve_recipe_messages,
    get_recipe_messages,
)
from src.providers.image_client import ImageClient, ImageOptions, create_image_client
from src.providers.text_client import TextGenerationClient
from src.services.dish_types import fallback_image_url
from src.services.formatter import format_recipe
from src.services.normalizer import extract_json_object
from src.services.tips import (
    build_recipe_specific_fallback,
    build_simple_tips,
    parse_basic_tips,
    parse_dynamic_tips,
)
from src.utils.config import config
from src.utils.errors import (
    ErrorCategory,
    InvalidInputError,
    PantryChefError,
    RecipeGenerationError,
)
from src.utils.helpers import safe_execute_async
from src.utils.logger import logger


EMPTY_INGREDIENTS_MESSAGE = "🥕 Please add some ingredients to generate a recipe!"
INGREDIENTS_NOT_A_LIST_MESSAGE = "🥕 Ingredients must be a list of names, not a single string."
EMPTY_IMPROVEMENT_MESSAGE = "✏️ Please describe how you would like the recipe improved."

# User-facing messages per failure category. Categories not listed here
# either keep their own message (input, schema) or use the generic one.
USER_MESSAGES = {
    ErrorCategory.NOT_CONFIGURED: "🔑 Recipe AI not configured. Please add your GROQ_API_KEY to the .env file.",
    ErrorCategory.RATE_LIMITED: "⏳ Too many requests to the recipe AI. Please wait 30 seconds and try again.",
    ErrorCategory.AUTH_FAILURE: "🔐 Invalid recipe AI API key. Please check your GROQ_API_KEY in the .env file.",
    ErrorCategory.PROVIDER_UNAVAILABLE: "🔧 Recipe AI service temporarily unavailable. Try again in a few minutes.",
    ErrorCategory.NETWORK: "🌐 Connection error. Please check your internet and try again.",
    ErrorCategory.EMPTY_RESPONSE: "🤖 Recipe AI returned incomplete response. Please try again.",
    ErrorCategory.FORMAT: "🔧 Recipe AI response format error. Please try generating again.",
}

# Categories whose exception message is already user-presentable
PASSTHROUGH_CATEGORIES = (ErrorCategory.INVALID_INPUT, ErrorCategory.SCHEMA)

ImageCallback = Callable[[str, str], Union[None, Awaitable[None]]]


class GenerationStage(str, Enum):
    VALIDATING_INPUT = "validating_input"
    AWAITING_PROVIDER = "awaiting_provider"
    NORMALIZING = "normalizing"
    FORMATTING = "formatting"
    ENHANCING_IMAGE = "enhancing_image"
    DONE = "done"


def _sniff_category(message: str) -> ErrorCategory:
    """Classify an untagged exception by keywords in its message."""
    msg = message.lower()
    if "not configured" in msg:
        return ErrorCategory.NOT_CONFIGURED
    if "429" in msg or "rate limit" in msg:
        return ErrorCategory.RATE_LIMITED
    if "401" in msg or "unauthorized" in msg or ("invalid" in msg and "key" in msg):
        return ErrorCategory.AUTH_FAILURE
    if any(keyword in msg for keyword in ("network", "fetch", "cors", "blocked", "timeout")):
        return ErrorCategory.NETWORK
    if "empty" in msg or "incomplete" in msg:
        return ErrorCategory.EMPTY_RESPONSE
    return ErrorCategory.UNKNOWN


def classify_error(error: BaseException) -> Tuple[str, ErrorCategory]:
    """Map any exception to (user message, category).

    Tagged PantryChefError instances map by category; anything else is
    keyword-sniffed. Unmatched errors keep their text behind a generic prefix.
    """
    if isinstance(error, PantryChefError):
        category = error.category
    else:
        category = _sniff_category(str(error))

    if category in PASSTHROUGH_CATEGORIES:
        return str(error), category
    if category in USER_MESSAGES:
        return USER_MESSAGES[category], category
    return f"Recipe generation failed: {error}", category


def _ingredient_names(ingredients: Sequence[Union[Ingredient, str]]) -> List[str]:
    if isinstance(ingredients, str):
        raise InvalidInputError(INGREDIENTS_NOT_A_LIST_MESSAGE)
    names = []
    for item in ingredients or []:
        if item is None:
            continue
        name = item.name if isinstance(item, Ingredient) else str(item)
        if name.strip():
            names.append(name.strip())
    return names


def _provider_recipe_payload(recipe: Recipe) -> dict:
    """Recipe in the JSON shape the recipe prompt asks the provider for."""
    return {
        "title": recipe.title,
        "description": recipe.description,
        "cookTime": recipe.cook_time_minutes,
        "difficulty": recipe.difficulty.value,
        "servings": recipe.servings,
        "ingredients": [ingredient.model_dump() for ingredient in recipe.ingredients],
        "instructions": list(recipe.instructions),
        "dietaryTags": list(recipe.dietary_tags),
    }


class AIService:
    """Recipe generation, image enhancement and cooking tips.

    Clients are injected for tests; by default they are built from config.
    """

    def __init__(
        self,
        text_client: Optional[TextGenerationClient] = None,
        image_client: Optional[ImageClient] = None,
        *,
        source: str = "groq",
        image_options: Optional[ImageOptions] = None,
        recipe_temperature: Optional[float] = None,
        tips_temperature: Optional[float] = None,
        image_enhancement_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.text_client = text_client or TextGenerationClient()
        self.image_client = image_client or create_image_client()
        self.source = source
        self.image_options = image_options or ImageOptions.from_config()
        self.recipe_temperature = config.RECIPE_TEMPERATURE if recipe_temperature is None else recipe_temperature
        self.tips_temperature = config.TIPS_TEMPERATURE if tips_temperature is None else tips_temperature
        self.image_enhancement_delay = (
            config.IMAGE_ENHANCEMENT_DELAY_SECONDS if image_enhancement_delay is None else image_enhancement_delay
        )
        self._sleep = sleep
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._rng = rng or random.Random()
        # Strong references keep background image tasks alive until they finish
        self._background_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Recipe generation
    # ------------------------------------------------------------------

    def _to_generation_error(self, error: Exception, stage: GenerationStage) -> RecipeGenerationError:
        message, category = classify_error(error)
        logger.error(
            f"Recipe generation failed: {type(error).__name__}: {error}",
            extra={"stage": stage.value, "category": category.value},
        )
        return RecipeGenerationError(message, category, stage=stage.value)

    async def generate_recipe(
        self,
        ingredients: Sequence[Union[Ingredient, str]],
        constraints: Optional[GenerationConstraints] = None,
        *,
        enhance_image: bool = True,
    ) -> Recipe:
        """Generate a recipe from pantry ingredients.

        Args:
            ingredients: Ingredient objects or plain names, in order.
            constraints: Diet, time, difficulty and servings; defaults apply when omitted.
            enhance_image: Replace the stock photograph with a generated image (best effort).

        Returns:
            Recipe: Always has a non-empty image.

        Raises:
            RecipeGenerationError: With a user-facing message, category and failing stage.
                The original exception is chained as __cause__.
        """
        stage = GenerationStage.VALIDATING_INPUT
        try:
            names = _ingredient_names(ingredients)
            if not names:
                raise InvalidInputError(EMPTY_INGREDIENTS_MESSAGE)
            request = GenerationRequest.build(names, constraints)
            logger.info(
                f"Generating recipe from {len(names)} ingredients: {', '.join(names)}",
                extra={"stage": stage.value},
            )

            stage = GenerationStage.AWAITING_PROVIDER
            reply = await self.text_client.complete(get_recipe_messages(request), temperature=self.recipe_temperature)

            stage = GenerationStage.NORMALIZING
            raw = extract_json_object(reply)

            stage = GenerationStage.FORMATTING
            recipe = format_recipe(raw, self.source, now=self._now(), rng=self._rng)
        except Exception as e:
            raise self._to_generation_error(e, stage) from e

        if enhance_image:
            recipe = await self._enhance_image(recipe)

        logger.info(
            f"Recipe ready: {recipe.title}",
            extra={"recipe_id": recipe.id, "stage": GenerationStage.DONE.value},
        )
        return recipe

    async def _enhance_image(self, recipe: Recipe) -> Recipe:
        """Swap in a generated image, keeping the stock photograph on failure or no result."""
        image = await safe_execute_async(
            self.image_client.generate_image(recipe.title, recipe.ingredient_names, self.image_options),
            f"Image generation for '{recipe.title}', keeping fallback image",
            log_level="warning",
            default_return=None,
        )
        if not image:
            return recipe
        logger.debug(
            "Generated image attached",
            extra={"recipe_id": recipe.id, "stage": GenerationStage.ENHANCING_IMAGE.value},
        )
        return recipe.model_copy(update={"image": image})

    async def generate_recipe_image(self, recipe_title: str, ingredient_names: List[str]) -> str:
        """Generated image for a recipe, or its stock photograph. Never raises."""
        image = await safe_execute_async(
            self.image_client.generate_image(recipe_title, ingredient_names, self.image_options),
            f"Image generation for '{recipe_title}'",
            log_level="warning",
            default_return=None,
        )
        return image or fallback_image_url(recipe_title, ingredient_names)

    async def generate_image_variations(
        self, recipe_title: str, ingredient_names: List[str], count: int = 3
    ) -> List[str]:
        """Several stylistic renditions of a recipe image.

        Falls back to a single image when the configured client has no variations support.
        """
        if hasattr(self.image_client, "generate_image_variations"):
            return await self.image_client.generate_image_variations(recipe_title, ingredient_names, count)
        return [await self.generate_recipe_image(recipe_title, ingredient_names)]

    async def generate_recipe_with_async_image(
        self,
        ingredients: Sequence[Union[Ingredient, str]],
        constraints: Optional[GenerationConstraints] = None,
        on_image_generated: Optional[ImageCallback] = None,
    ) -> Recipe:
        """Return the recipe with its stock photograph now, deliver the generated image later.

        When a callback is given, a background task waits image_enhancement_delay,
        generates the image and calls on_image_generated(recipe_id, image_url).
        On image failure the callback receives the recipe's existing image.

        Raises:
            RecipeGenerationError: Same as generate_recipe().
        """
        recipe = await self.generate_recipe(ingredients, constraints, enhance_image=False)

        if on_image_generated is not None:
            task = asyncio.create_task(self._deliver_image(recipe, on_image_generated))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return recipe

    async def _deliver_image(self, recipe: Recipe, callback: ImageCallback) -> None:
        await self._sleep(self.image_enhancement_delay)

        image = await safe_execute_async(
            self.image_client.generate_image(recipe.title, recipe.ingredient_names, self.image_options),
            f"Async image generation for '{recipe.title}', keeping fallback image",
            log_level="warning",
            default_return=None,
        )
        image_url = image or recipe.image

        async def _invoke_callback():
            result = callback(recipe.id, image_url)
            if inspect.isawaitable(result):
                await result

        await safe_execute_async(
            _invoke_callback(),
            f"Image callback for recipe {recipe.id}",
            log_level="error",
        )

    async def wait_for_background_tasks(self) -> None:
        """Wait until every pending background image task has finished."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def improve_recipe(self, recipe: Recipe, improvement_request: str) -> Recipe:
        """Rework a recipe according to a free-text request (e.g. "make it vegetarian").

        The improved recipe keeps the original id, and the original image unless
        the provider supplies a new one.

        Raises:
            RecipeGenerationError: Classified like generate_recipe().
        """
        stage = GenerationStage.VALIDATING_INPUT
        try:
            if not improvement_request or not improvement_request.strip():
                raise InvalidInputError(EMPTY_IMPROVEMENT_MESSAGE)

            stage = GenerationStage.AWAITING_PROVIDER
            messages = get_improve_recipe_messages(_provider_recipe_payload(recipe), improvement_request.strip())
            reply = await self.text_client.complete(messages, temperature=self.tips_temperature)

            stage = GenerationStage.NORMALIZING
            raw = extract_json_object(reply)
            if isinstance(raw, dict):
                raw = {**raw, "id": recipe.id}
                if not raw.get("image"):
                    raw["image"] = recipe.image

            stage = GenerationStage.FORMATTING
            improved = format_recipe(raw, self.source, now=self._now(), rng=self._rng)
        except Exception as e:
            raise self._to_generation_error(e, stage) from e

        logger.info(f"Recipe improved: {improved.title}", extra={"recipe_id": improved.id})
        return improved

    # ------------------------------------------------------------------
    # Cooking tips
    # ------------------------------------------------------------------

    async def generate_dynamic_cooking_tips(
        self, recipe_title: str, ingredient_names: List[str]
    ) -> DynamicCookingTips:
        """Recipe-specific tips from the provider. Raises on any failure."""
        # Recipe-specific tips use the creative temperature, like recipes
        reply = await self.text_client.complete(
            get_dynamic_tips_messages(recipe_title, ingredient_names),
            temperature=self.recipe_temperature,
        )
        return parse_dynamic_tips(extract_json_object(reply))

    async def generate_cooking_tips(self, ingredient_names: List[str]) -> BasicCookingTips:
        """Generic ingredient tips from the provider. Raises on any failure."""
        reply = await self.text_client.complete(
            get_basic_tips_messages(ingredient_names),
            temperature=self.tips_temperature,
        )
        return parse_basic_tips(extract_json_object(reply))

    async def get_ingredient_tips(self, ingredient_names: List[str]) -> BasicCookingTips:
        """Generic ingredient tips, degrading to hardcoded tips. Never raises."""
        tips = await safe_execute_async(
            self.generate_cooking_tips(ingredient_names),
            "Generic cooking tips, using simple tips",
            log_level="warning",
            default_return=None,
        )
        return tips or build_simple_tips(ingredient_names)

    async def get_recipe_enhancements(self, recipe: Recipe) -> RecipeEnhancements:
        """Cooking tips for a recipe through an ordered fallback chain. Never raises.

        Strategies, most specific first:
        1. Recipe-specific tips from the provider
        2. Generic ingredient tips from the provider
        3. Hardcoded recipe-specific tips (first ingredient + recipe type)
        """
        names = recipe.ingredient_names
        tip_strategies: List[Tuple[TipSource, Callable[[], Awaitable[Any]]]] = [
            (TipSource.RECIPE_SPECIFIC, lambda: self.generate_dynamic_cooking_tips(recipe.title, names)),
            (TipSource.GENERIC, lambda: self.generate_cooking_tips(names)),
        ]

        for source, strategy in tip_strategies:
            tips = await safe_execute_async(
                strategy(),
                f"{source.value} cooking tips for '{recipe.title}'",
                log_level="warning",
                default_return=None,
            )
            if tips is not None:
                logger.info(f"Cooking tips ready ({source.value})", extra={"recipe_id": recipe.id})
                return RecipeEnhancements(cooking_tips=tips, source=source)

        logger.info("Using hardcoded cooking tips", extra={"recipe_id": recipe.id})
        return RecipeEnhancements(
            cooking_tips=build_recipe_specific_fallback(recipe.title, names),
            source=TipSource.FALLBACK,
        )
