"""Image generation clients for dish photographs.

Two providers behind the same interface:
- PollinationsImageClient: no auth, builds a deterministic-shape URL (no network call)
- GeminiImageClient: google-genai SDK, returns an http(s) URL or a data: URI

Both return None or raise on failure. Falling back to a stock photograph is
the orchestrator's job, not theirs.
"""

import asyncio
import base64
import random
import re
from enum import Enum
from typing import Any, List, Optional, Union
from urllib.parse import quote, urlencode

import filetype
import httpx
from google import genai
from google.genai import errors as genai_errors
from pydantic import BaseModel, ConfigDict

from src.prompts.prompts import get_image_prompt
from src.utils.config import config
from src.utils.errors import EmptyResponseError, NetworkError, NotConfiguredError, provider_error_for_status
from src.utils.helpers import safe_execute_sync
from src.utils.logger import logger


class ImageStyle(str, Enum):
    FOOD_PHOTOGRAPHY = "food-photography"
    MINIMALIST = "minimalist"
    RUSTIC = "rustic"
    ELEGANT = "elegant"


class ImageQuality(str, Enum):
    STANDARD = "standard"
    HIGH = "high"


class ImageOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    style: ImageStyle = ImageStyle.FOOD_PHOTOGRAPHY
    quality: ImageQuality = ImageQuality.HIGH

    @classmethod
    def from_config(cls) -> "ImageOptions":
        return cls(style=ImageStyle(config.IMAGE_STYLE), quality=ImageQuality(config.IMAGE_QUALITY))


# Styles rendered by generate_image_variations, in order
VARIATION_STYLES = (ImageStyle.FOOD_PHOTOGRAPHY, ImageStyle.MINIMALIST, ImageStyle.ELEGANT)

URL_PATTERN = re.compile(r"https?://[^\s]+")
DATA_URI_PATTERN = re.compile(r"data:image/[^;]+;base64,[A-Za-z0-9+/=]+")


def build_image_prompt(title: str, ingredient_names: List[str], options: Optional[ImageOptions] = None) -> str:
    """Render the image prompt for a recipe.

    Args:
        title: Recipe title.
        ingredient_names: Ingredient names, only the first three are used.
        options: Style and quality; defaults to food-photography / high.

    Returns:
        str: Prompt text
    """
    options = options or ImageOptions()
    return get_image_prompt(title, ingredient_names, options.style.value, options.quality.value)


def _is_image_data_uri(data_uri: str) -> bool:
    """Decode a data: URI payload and check its magic bytes look like an image."""

    def _decode():
        _, encoded = data_uri.split(",", 1)
        return base64.b64decode(encoded, validate=True)

    image_bytes = safe_execute_sync(_decode, "Decode image data URI", log_level="debug", default_return=None)
    if not image_bytes:
        return False
    kind = filetype.guess(image_bytes)
    if kind is None or not kind.mime.startswith("image/"):
        logger.debug(f"Discarding data URI with unrecognised payload: {kind}")
        return False
    return True


def extract_image_reference(text: Optional[str]) -> Optional[str]:
    """Find an image reference in free text returned by a provider.

    Looks for an http(s) URL first, then a base64 data:image URI. A data URI
    whose payload is not a recognisable image is ignored.

    Args:
        text: Provider text output.

    Returns:
        The first usable reference, or None if there is none.
    """
    if not text:
        return None

    url_match = URL_PATTERN.search(text)
    if url_match:
        return url_match.group(0)

    data_match = DATA_URI_PATTERN.search(text)
    if data_match and _is_image_data_uri(data_match.group(0)):
        return data_match.group(0)

    return None


class PollinationsImageClient:
    """URL-based image generation. Always configured, never touches the network."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.base_url = base_url or config.POLLINATIONS_BASE_URL
        self.model = model or config.POLLINATIONS_MODEL
        self._rng = rng or random.Random()

    def is_configured(self) -> bool:
        return True

    async def generate_image(
        self, title: str, ingredient_names: List[str], options: Optional[ImageOptions] = None
    ) -> str:
        """Build the image URL for a recipe.

        Args:
            title: Recipe title.
            ingredient_names: Ingredient names in recipe order.
            options: Style and quality; defaults to food-photography / high.

        Returns:
            str: {base_url}{encoded prompt}?width=..&height=..&seed=..&model=..
        """
        options = options or ImageOptions()
        prompt = build_image_prompt(title, ingredient_names, options)
        size = 1024 if options.quality == ImageQuality.HIGH else 768
        seed = self._rng.randrange(1_000_000)
        query = urlencode({"width": size, "height": size, "seed": seed, "model": self.model})
        image_url = f"{self.base_url}{quote(prompt, safe='')}?{query}"
        logger.debug(f"Pollinations image URL built for '{title}' ({options.style.value}, {size}px)")
        return image_url

    async def generate_image_variations(
        self, title: str, ingredient_names: List[str], count: int = 3
    ) -> List[str]:
        """Render the same recipe in up to three styles concurrently.

        Failed variations are dropped; the result may be shorter than count.
        """
        styles = VARIATION_STYLES[: max(count, 0)]
        results = await asyncio.gather(
            *(self.generate_image(title, ingredient_names, ImageOptions(style=style)) for style in styles),
            return_exceptions=True,
        )
        variations = []
        for style, result in zip(styles, results):
            if isinstance(result, BaseException):
                logger.warning(f"Image variation '{style.value}' failed: {result}")
                continue
            variations.append(result)
        return variations


class GeminiImageClient:
    """Image generation through the google-genai SDK (requires GEMINI_API_KEY).

    The SDK call is synchronous, so it runs in a worker thread bounded by a timeout.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_IMAGE_MODEL
        self.timeout = timeout or config.REQUEST_TIMEOUT_SECONDS
        self._client = client

        if not self.is_configured():
            logger.warning("Gemini API key not found, image generation will fall back to stock photos")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_image(
        self, title: str, ingredient_names: List[str], options: Optional[ImageOptions] = None
    ) -> Optional[str]:
        """Ask Gemini for a dish photograph.

        Returns:
            A data: URI for inline image output, an http(s) URL or data URI found
            in text output, or None when the response holds neither.

        Raises:
            NotConfiguredError: No API key.
            AuthFailureError, RateLimitedError, ProviderUnavailableError, ProviderError: SDK API errors.
            NetworkError: Timeout or connection failure.
        """
        if not self.is_configured():
            raise NotConfiguredError("🔑 Gemini API key is not configured")

        prompt = build_image_prompt(title, ingredient_names, options)
        client = self._get_client()

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(client.models.generate_content, model=self.model, contents=prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Gemini image generation timed out after {self.timeout}s") from e
        except genai_errors.APIError as e:
            raise provider_error_for_status(e.code, e.message) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Gemini connection failed: {e}") from e

        image = self._parse_response(response)
        if image is None:
            logger.info(f"Gemini returned no image for '{title}'", extra={"provider": "gemini"})
        return image

    @staticmethod
    def _parse_response(response: Any) -> Optional[str]:
        """Walk candidates[0].content.parts, preferring inline image data over text."""
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            raise EmptyResponseError("Gemini returned no candidates")

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []

        texts = []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            data: Union[bytes, str, None] = getattr(inline, "data", None) if inline is not None else None
            if data:
                mime_type = getattr(inline, "mime_type", None) or "image/png"
                if isinstance(data, bytes):
                    data = base64.b64encode(data).decode("ascii")
                return f"data:{mime_type};base64,{data}"
            text = getattr(part, "text", None)
            if isinstance(text, str) and text.strip():
                texts.append(text)

        return extract_image_reference("\n".join(texts))


ImageClient = Union[PollinationsImageClient, GeminiImageClient]


def create_image_client(provider: Optional[str] = None) -> ImageClient:
    """Create the image client selected by IMAGE_PROVIDER.

    Args:
        provider: "pollinations" or "gemini"; defaults to config.IMAGE_PROVIDER.

    Raises:
        ValueError: Unknown provider name.
    """
    provider = (provider or config.IMAGE_PROVIDER).lower()
    if provider == "pollinations":
        return PollinationsImageClient()
    if provider == "gemini":
        return GeminiImageClient()
    raise ValueError(f"Unknown image provider: {provider}")
