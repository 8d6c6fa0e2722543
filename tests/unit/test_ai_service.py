"""Unit tests for the AIService orchestrator."""

import json
import random
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.models import (
    BasicCookingTips,
    Difficulty,
    DynamicCookingTips,
    GenerationConstraints,
    Ingredient,
    TipSource,
)
from src.providers.image_client import GeminiImageClient, ImageOptions
from src.providers.text_client import TextGenerationClient
from src.services.ai_service import (
    EMPTY_INGREDIENTS_MESSAGE,
    INGREDIENTS_NOT_A_LIST_MESSAGE,
    AIService,
    GenerationStage,
    classify_error,
)
from src.services.dish_types import fallback_image_url
from src.services.formatter import format_recipe
from src.utils.errors import (
    AuthFailureError,
    EmptyResponseError,
    ErrorCategory,
    NetworkError,
    NotConfiguredError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitedError,
    RecipeGenerationError,
)


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
GENERATED_IMAGE = "https://pollinations.ai/p/generated?width=1024"

RECIPE_JSON = json.dumps(
    {
        "title": "Chicken Fried Rice",
        "description": "Smoky, savoury and fast.",
        "cookTime": 25,
        "difficulty": "easy",
        "servings": 2,
        "ingredients": [
            {"name": "chicken", "quantity": "200", "unit": "g"},
            {"name": "rice", "quantity": "1", "unit": "cup"},
        ],
        "instructions": ["Step 1: Cook the rice.", "Step 2: Fry the chicken.", "Combine and serve."],
        "dietaryTags": ["general"],
    }
)

DYNAMIC_TIPS_JSON = json.dumps(
    {
        "recipeTips": [{"title": "Use cold rice", "content": "Day-old rice fries better.", "category": "cooking"}],
        "ingredientSecrets": [{"ingredient": "chicken", "secret": "Velvet it", "impact": "Tender bites"}],
    }
)

BASIC_TIPS_JSON = json.dumps(
    {"generalTips": [{"title": "Rinse rice", "content": "Remove excess starch.", "importance": "high"}]}
)


def _text_client(reply=RECIPE_JSON, side_effect=None):
    client = MagicMock()
    client.complete = AsyncMock(return_value=reply, side_effect=side_effect)
    return client


def _image_client(image=GENERATED_IMAGE, side_effect=None):
    client = MagicMock()
    client.generate_image = AsyncMock(return_value=image, side_effect=side_effect)
    client.generate_image_variations = AsyncMock(return_value=["a", "b", "c"])
    return client


def _service(text_client=None, image_client=None, sleep=None):
    return AIService(
        text_client or _text_client(),
        image_client or _image_client(),
        source="groq",
        image_options=ImageOptions(),
        recipe_temperature=0.8,
        tips_temperature=0.7,
        image_enhancement_delay=0.1,
        sleep=sleep or AsyncMock(),
        now=lambda: NOW,
        rng=random.Random(0),
    )


def _recipe(**overrides):
    raw = json.loads(RECIPE_JSON)
    raw.update(overrides)
    return format_recipe(raw, "groq", now=NOW, rng=random.Random(0))


class TestGenerateRecipe:
    """Test the happy path and input handling."""

    @pytest.mark.asyncio
    async def test_constraints_are_honoured(self):
        """Test chicken + rice with a 30 minute, easy, two-serving request."""
        text_client = _text_client()
        service = _service(text_client)
        constraints = GenerationConstraints(max_time_minutes=30, difficulty="easy", servings=2)

        recipe = await service.generate_recipe(["chicken", "rice"], constraints)

        assert recipe.cook_time_minutes <= 30
        assert recipe.difficulty == Difficulty.EASY
        assert recipe.servings == 2
        assert recipe.instructions[0].startswith("Step 1: ")
        assert recipe.instructions[2] == "Step 3: Combine and serve."
        assert recipe.id.startswith("groq_")

        messages = text_client.complete.call_args.args[0]
        assert text_client.complete.call_args.kwargs["temperature"] == 0.8
        assert "chicken, rice" in messages[1].content
        assert "Max time: 30 minutes" in messages[1].content
        assert '"difficulty": "easy"' in messages[1].content

    @pytest.mark.asyncio
    async def test_accepts_ingredient_objects(self):
        text_client = _text_client()
        service = _service(text_client)
        ingredients = [Ingredient(id="1", name="chicken"), Ingredient(id="2", name="rice", quantity="1", unit="cup")]

        await service.generate_recipe(ingredients)

        assert "chicken, rice" in text_client.complete.call_args.args[0][1].content

    @pytest.mark.asyncio
    async def test_dietary_restrictions_in_prompt(self):
        text_client = _text_client()
        constraints = GenerationConstraints(dietary_restrictions=["vegetarian", "gluten-free"])

        await _service(text_client).generate_recipe(["tofu"], constraints)

        prompt = text_client.complete.call_args.args[0][1].content
        assert "• Dietary: vegetarian, gluten-free" in prompt
        assert '"dietaryTags": ["vegetarian", "gluten-free"]' in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ingredients", [[], ["", "   "]])
    async def test_empty_ingredients_short_circuit(self, ingredients):
        text_client = _text_client()
        image_client = _image_client()

        with pytest.raises(RecipeGenerationError) as exc:
            await _service(text_client, image_client).generate_recipe(ingredients)

        assert str(exc.value) == EMPTY_INGREDIENTS_MESSAGE
        assert exc.value.category == ErrorCategory.INVALID_INPUT
        assert exc.value.stage == GenerationStage.VALIDATING_INPUT.value
        assert text_client.complete.call_count == 0
        assert image_client.generate_image.call_count == 0

    @pytest.mark.asyncio
    async def test_single_string_is_not_split_into_letters(self):
        text_client = _text_client()

        with pytest.raises(RecipeGenerationError) as exc:
            await _service(text_client).generate_recipe("chicken")

        assert str(exc.value) == INGREDIENTS_NOT_A_LIST_MESSAGE
        assert exc.value.category == ErrorCategory.INVALID_INPUT
        assert text_client.complete.call_count == 0

    @pytest.mark.asyncio
    async def test_none_items_are_skipped(self):
        text_client = _text_client()

        await _service(text_client).generate_recipe(["chicken", None, "rice"])

        prompt = text_client.complete.call_args.args[0][1].content
        assert "chicken, rice" in prompt
        assert "None" not in prompt

    @pytest.mark.asyncio
    async def test_fenced_reply_with_commentary(self):
        reply = f"Sure! Here is your recipe:\n```json\n{RECIPE_JSON}\n```\nLet me know if you'd like a variation."

        recipe = await _service(_text_client(reply)).generate_recipe(["chicken", "rice"])

        assert recipe.title == "Chicken Fried Rice"


class TestImageEnhancement:
    """Test that image generation never fails a recipe."""

    @pytest.mark.asyncio
    async def test_generated_image_is_attached(self):
        recipe = await _service().generate_recipe(["chicken", "rice"])
        assert recipe.image == GENERATED_IMAGE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "image,side_effect",
        [(None, None), ("", None), (None, RuntimeError("image backend down")), (None, RateLimitedError(429))],
    )
    async def test_failure_keeps_fallback_image(self, image, side_effect):
        service = _service(image_client=_image_client(image=image, side_effect=side_effect))

        recipe = await service.generate_recipe(["chicken", "rice"])

        assert recipe.image == fallback_image_url("Chicken Fried Rice", ["chicken", "rice"])

    @pytest.mark.asyncio
    async def test_enhancement_can_be_skipped(self):
        image_client = _image_client()

        recipe = await _service(image_client=image_client).generate_recipe(["chicken"], enhance_image=False)

        image_client.generate_image.assert_not_called()
        assert recipe.image.startswith("https://images.unsplash.com/")

    @pytest.mark.asyncio
    async def test_generate_recipe_image_falls_back(self):
        service = _service(image_client=_image_client(side_effect=RuntimeError("boom")))

        image = await service.generate_recipe_image("Tomato Soup", ["tomato"])

        assert image == fallback_image_url("Tomato Soup", ["tomato"])

    @pytest.mark.asyncio
    async def test_generate_recipe_image_success(self):
        assert await _service().generate_recipe_image("Tomato Soup", ["tomato"]) == GENERATED_IMAGE

    @pytest.mark.asyncio
    async def test_image_variations_delegate(self):
        image_client = _image_client()

        variations = await _service(image_client=image_client).generate_image_variations("Soup", ["water"], 3)

        assert variations == ["a", "b", "c"]
        image_client.generate_image_variations.assert_awaited_once_with("Soup", ["water"], 3)

    @pytest.mark.asyncio
    async def test_image_variations_without_support(self):
        image_client = MagicMock(spec=GeminiImageClient)
        image_client.generate_image = AsyncMock(return_value=GENERATED_IMAGE)

        variations = await _service(image_client=image_client).generate_image_variations("Soup", ["water"])

        assert variations == [GENERATED_IMAGE]


class TestAsyncImage:
    """Test background image delivery."""

    @pytest.mark.asyncio
    async def test_returns_fallback_then_delivers_image(self):
        sleep = AsyncMock()
        callback = MagicMock()
        service = _service(sleep=sleep)

        recipe = await service.generate_recipe_with_async_image(["chicken", "rice"], on_image_generated=callback)
        assert recipe.image.startswith("https://images.unsplash.com/")

        await service.wait_for_background_tasks()

        sleep.assert_awaited_once_with(0.1)
        callback.assert_called_once_with(recipe.id, GENERATED_IMAGE)

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self):
        callback = AsyncMock()
        service = _service()

        recipe = await service.generate_recipe_with_async_image(["chicken"], on_image_generated=callback)
        await service.wait_for_background_tasks()

        callback.assert_awaited_once_with(recipe.id, GENERATED_IMAGE)

    @pytest.mark.asyncio
    async def test_failure_delivers_existing_image(self):
        callback = MagicMock()
        service = _service(image_client=_image_client(side_effect=RuntimeError("boom")))

        recipe = await service.generate_recipe_with_async_image(["chicken"], on_image_generated=callback)
        await service.wait_for_background_tasks()

        callback.assert_called_once_with(recipe.id, recipe.image)

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self):
        callback = MagicMock(side_effect=RuntimeError("ui gone"))
        service = _service()

        await service.generate_recipe_with_async_image(["chicken"], on_image_generated=callback)
        await service.wait_for_background_tasks()

        callback.assert_called_once()
        assert not service._background_tasks

    @pytest.mark.asyncio
    async def test_no_callback_no_background_work(self):
        image_client = _image_client()
        service = _service(image_client=image_client)

        await service.generate_recipe_with_async_image(["chicken"])
        await service.wait_for_background_tasks()

        image_client.generate_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_generation_errors_propagate(self):
        callback = MagicMock()
        service = _service(_text_client(side_effect=NetworkError("down")))

        with pytest.raises(RecipeGenerationError):
            await service.generate_recipe_with_async_image(["chicken"], on_image_generated=callback)
        callback.assert_not_called()


class TestErrorClassification:
    """Test provider failures become user-facing messages."""

    @pytest.mark.asyncio
    async def test_rate_limit_from_provider(self):
        """Test that an HTTP 429 from the provider reads as rate limiting, not a network error."""
        response = MagicMock()
        response.status = 429
        response.json = AsyncMock(return_value={"error": {"message": "Rate limit reached"}})
        session = MagicMock()
        session.post.return_value.__aenter__ = AsyncMock(return_value=response)
        session.post.return_value.__aexit__ = AsyncMock(return_value=False)
        text_client = TextGenerationClient(
            api_key="gsk_test", requires_auth=True, key_prefix="gsk_", min_request_interval=0, session=session
        )

        with pytest.raises(RecipeGenerationError) as exc:
            await _service(text_client).generate_recipe(["chicken", "rice"])

        assert exc.value.category == ErrorCategory.RATE_LIMITED
        assert "too many requests" in str(exc.value).lower()
        assert "connection" not in str(exc.value).lower()
        assert exc.value.stage == GenerationStage.AWAITING_PROVIDER.value
        assert isinstance(exc.value.__cause__, RateLimitedError)

    @pytest.mark.asyncio
    async def test_missing_instructions_rejected_before_image(self):
        reply = '{"title": "Soup", "ingredients": ["water"], "instructions": []}'
        image_client = _image_client()

        with pytest.raises(RecipeGenerationError) as exc:
            await _service(_text_client(reply), image_client).generate_recipe(["water"])

        assert exc.value.category == ErrorCategory.SCHEMA
        assert str(exc.value) == "📋 Recipe missing instructions - please try generating again."
        assert exc.value.stage == GenerationStage.FORMATTING.value
        image_client.generate_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_unparseable_reply(self):
        with pytest.raises(RecipeGenerationError) as exc:
            await _service(_text_client("I cannot help with that.")).generate_recipe(["water"])

        assert exc.value.category == ErrorCategory.FORMAT
        assert exc.value.stage == GenerationStage.NORMALIZING.value

    @pytest.mark.parametrize(
        "error,category,fragment",
        [
            (NotConfiguredError("missing key"), ErrorCategory.NOT_CONFIGURED, "🔑"),
            (RateLimitedError(429), ErrorCategory.RATE_LIMITED, "wait 30 seconds"),
            (AuthFailureError(401), ErrorCategory.AUTH_FAILURE, "🔐 Invalid"),
            (ProviderUnavailableError(503), ErrorCategory.PROVIDER_UNAVAILABLE, "temporarily unavailable"),
            (NetworkError("refused"), ErrorCategory.NETWORK, "🌐 Connection error"),
            (EmptyResponseError("nothing"), ErrorCategory.EMPTY_RESPONSE, "incomplete response"),
            (ProviderError(418, "teapot"), ErrorCategory.PROVIDER_ERROR, "Recipe generation failed: HTTP 418: teapot"),
        ],
    )
    def test_tagged_errors(self, error, category, fragment):
        message, got_category = classify_error(error)

        assert got_category == category
        assert fragment in message

    @pytest.mark.parametrize(
        "text,category",
        [
            ("API key not configured", ErrorCategory.NOT_CONFIGURED),
            ("HTTP 429 Too Many Requests", ErrorCategory.RATE_LIMITED),
            ("Rate limit exceeded", ErrorCategory.RATE_LIMITED),
            ("401 Unauthorized", ErrorCategory.AUTH_FAILURE),
            ("Invalid API key provided", ErrorCategory.AUTH_FAILURE),
            ("Failed to fetch", ErrorCategory.NETWORK),
            ("Blocked by CORS policy", ErrorCategory.NETWORK),
            ("Read timeout", ErrorCategory.NETWORK),
            ("Model returned empty output", ErrorCategory.EMPTY_RESPONSE),
        ],
    )
    def test_untagged_errors_are_sniffed(self, text, category):
        assert classify_error(RuntimeError(text))[1] == category

    def test_unmatched_error_keeps_original_text(self):
        message, category = classify_error(RuntimeError("kitchen on fire"))

        assert category == ErrorCategory.UNKNOWN
        assert message == "Recipe generation failed: kitchen on fire"

    @pytest.mark.asyncio
    async def test_foreign_exception_is_wrapped_and_chained(self):
        original = RuntimeError("Failed to fetch")

        with pytest.raises(RecipeGenerationError) as exc:
            await _service(_text_client(side_effect=original)).generate_recipe(["egg"])

        assert exc.value.category == ErrorCategory.NETWORK
        assert exc.value.__cause__ is original


class TestImproveRecipe:
    """Test recipe improvement."""

    @pytest.mark.asyncio
    async def test_keeps_id_and_image(self):
        original = _recipe().model_copy(update={"image": GENERATED_IMAGE})
        improved_json = json.dumps(
            {
                "title": "Spicy Chicken Fried Rice",
                "ingredients": [{"name": "chicken"}, {"name": "chili"}],
                "instructions": ["Add chili.", "Serve."],
                "cookTime": 30,
            }
        )
        text_client = _text_client(improved_json)

        improved = await _service(text_client).improve_recipe(original, "make it spicier")

        assert improved.id == original.id
        assert improved.image == GENERATED_IMAGE
        assert improved.title == "Spicy Chicken Fried Rice"
        assert improved.instructions == ["Step 1: Add chili.", "Step 2: Serve."]

        messages = text_client.complete.call_args.args[0]
        assert 'based on the request: "make it spicier"' in messages[1].content
        assert '"title": "Chicken Fried Rice"' in messages[1].content
        assert text_client.complete.call_args.kwargs["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_provider_image_replaces_original(self):
        improved_json = json.dumps(
            {"title": "X", "ingredients": ["a"], "instructions": ["b"], "image": "https://example.com/new.png"}
        )

        improved = await _service(_text_client(improved_json)).improve_recipe(_recipe(), "new look")

        assert improved.image == "https://example.com/new.png"

    @pytest.mark.asyncio
    async def test_blank_request_rejected(self):
        text_client = _text_client()

        with pytest.raises(RecipeGenerationError) as exc:
            await _service(text_client).improve_recipe(_recipe(), "   ")

        assert exc.value.category == ErrorCategory.INVALID_INPUT
        text_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_schema_errors_are_classified(self):
        with pytest.raises(RecipeGenerationError) as exc:
            await _service(_text_client('{"title": "X", "ingredients": []}')).improve_recipe(_recipe(), "less salt")

        assert exc.value.category == ErrorCategory.SCHEMA


class TestRecipeEnhancements:
    """Test the cooking tips fallback chain."""

    @pytest.mark.asyncio
    async def test_recipe_specific_tips_first(self):
        text_client = _text_client(DYNAMIC_TIPS_JSON)

        enhancements = await _service(text_client).get_recipe_enhancements(_recipe())

        assert enhancements.source == TipSource.RECIPE_SPECIFIC
        assert isinstance(enhancements.cooking_tips, DynamicCookingTips)
        assert enhancements.cooking_tips.recipe_tips[0].title == "Use cold rice"
        assert text_client.complete.call_count == 1
        assert text_client.complete.call_args.kwargs["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_falls_back_to_generic_tips(self):
        text_client = _text_client(side_effect=[RuntimeError("boom"), BASIC_TIPS_JSON])

        enhancements = await _service(text_client).get_recipe_enhancements(_recipe())

        assert enhancements.source == TipSource.GENERIC
        assert isinstance(enhancements.cooking_tips, BasicCookingTips)
        assert enhancements.cooking_tips.general_tips[0].title == "Rinse rice"

    @pytest.mark.asyncio
    async def test_unusable_tips_json_moves_on(self):
        text_client = _text_client(side_effect=['{"recipeTips": []}', "not json"])

        enhancements = await _service(text_client).get_recipe_enhancements(_recipe())

        assert enhancements.source == TipSource.FALLBACK

    @pytest.mark.asyncio
    async def test_hardcoded_fallback_when_everything_fails(self):
        text_client = _text_client(side_effect=RuntimeError("provider down"))
        recipe = _recipe(title="Beef Stir Fry")

        enhancements = await _service(text_client).get_recipe_enhancements(recipe)

        tips = enhancements.cooking_tips
        assert enhancements.source == TipSource.FALLBACK
        assert isinstance(tips, DynamicCookingTips)
        assert tips.recipe_tips[0].title == "Perfect stir-fry Technique"
        assert tips.ingredient_secrets[0].ingredient == "chicken"
        assert tips.flavor_enhancers and tips.common_pitfalls and tips.presentation_tips
        assert text_client.complete.call_count == 2

    @pytest.mark.asyncio
    async def test_generate_cooking_tips_raises(self):
        with pytest.raises(RuntimeError):
            await _service(_text_client(side_effect=RuntimeError("down"))).generate_cooking_tips(["egg"])

    @pytest.mark.asyncio
    async def test_ingredient_tips_fall_back_to_simple_tips(self):
        service = _service(_text_client(side_effect=RuntimeError("down")))

        tips = await service.get_ingredient_tips(["salmon"])

        assert [tip.title for tip in tips.general_tips] == ["Fresh Ingredients", "Proper Seasoning"]
        assert "fresh salmon" in tips.general_tips[0].content
        assert tips.flavor_pairings[0].pairs == ["herbs", "spices"]

    @pytest.mark.asyncio
    async def test_ingredient_tips_success(self):
        tips = await _service(_text_client(BASIC_TIPS_JSON)).get_ingredient_tips(["rice"])

        assert tips.general_tips[0].importance == "high"
