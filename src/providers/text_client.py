"""Chat-completions client for recipe and tips text generation.

Talks to any OpenAI-compatible /chat/completions endpoint (Groq by default)
over aiohttp. The client owns exactly two concerns beyond the HTTP call:
- Throttling: a minimum interval between two requests of the same instance
- Failure tagging: every failure is raised as a PantryChefError subclass

It never retries and never parses the returned text; that is left to the
normalizer and the orchestrator.
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional

import aiohttp

from src.models.models import ChatMessage
from src.utils.config import config
from src.utils.errors import (
    EmptyResponseError,
    NetworkError,
    NotConfiguredError,
    provider_error_for_status,
)
from src.utils.logger import logger


class TextGenerationClient:
    """Throttled chat-completions client.

    One instance holds one throttle timestamp. Concurrent tasks queue on a lock
    so each request waits out the interval after the one before it.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        key_prefix: Optional[str] = None,
        requires_auth: Optional[bool] = None,
        max_tokens: Optional[int] = None,
        top_p: Optional[float] = None,
        min_request_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_key = config.GROQ_API_KEY if api_key is None else api_key
        self.base_url = (config.TEXT_API_BASE_URL if base_url is None else base_url).rstrip("/")
        self.model = model or config.TEXT_MODEL
        self.key_prefix = config.TEXT_API_KEY_PREFIX if key_prefix is None else key_prefix
        self.requires_auth = config.TEXT_REQUIRES_AUTH if requires_auth is None else requires_auth
        self.max_tokens = max_tokens or config.MAX_OUTPUT_TOKENS
        self.top_p = config.TOP_P if top_p is None else top_p
        self.min_request_interval = (
            config.MIN_REQUEST_INTERVAL_SECONDS if min_request_interval is None else min_request_interval
        )
        self.timeout = timeout or config.REQUEST_TIMEOUT_SECONDS
        self._clock = clock
        self._sleep = sleep
        self._session = session
        # None until the first request is stamped
        self.last_request_time: Optional[float] = None
        self._throttle_lock = asyncio.Lock()

        if not self.is_configured():
            logger.warning(
                f"Text provider not configured (key missing or not starting with '{self.key_prefix}')",
                extra={"provider": self.base_url},
            )
        else:
            logger.debug(f"Text client ready: model={self.model}, base_url={self.base_url}")

    def is_configured(self) -> bool:
        """Check whether a request can be attempted at all.

        Returns:
            True if the provider needs no auth, or the key is non-empty and has
            the expected prefix (an empty prefix accepts any non-empty key).
        """
        if not self.requires_auth:
            return True
        return bool(self.api_key) and self.api_key.startswith(self.key_prefix)

    async def _wait_for_rate_limit(self) -> None:
        """Sleep for the rest of the minimum interval, then stamp the request time."""
        async with self._throttle_lock:
            if self.last_request_time is not None:
                elapsed = self._clock() - self.last_request_time
                remaining = self.min_request_interval - elapsed
                if remaining > 0:
                    logger.debug(f"Throttling text request for {remaining:.2f}s")
                    await self._sleep(remaining)
            self.last_request_time = self._clock()

    def _build_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.requires_auth and self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_payload(self, messages: List[ChatMessage], temperature: float) -> dict:
        return {
            "model": self.model,
            "messages": [message.model_dump() for message in messages],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "stream": False,
        }

    async def _post(self, session: aiohttp.ClientSession, payload: dict) -> str:
        async with session.post(
            f"{self.base_url}/chat/completions",
            json=payload,
            headers=self._build_headers(),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            if response.status < 200 or response.status >= 300:
                message = await self._read_error_message(response)
                raise provider_error_for_status(response.status, message)

            try:
                data = await response.json(content_type=None)
            except ValueError as e:
                raise EmptyResponseError(f"Unreadable response body: {e}") from e

        return self._extract_content(data)

    @staticmethod
    async def _read_error_message(response) -> Optional[str]:
        """Pull error.message out of a provider error body, if there is one."""
        try:
            body = await response.json(content_type=None)
        except (ValueError, aiohttp.ClientError):
            return None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"].get("message")
        return None

    @staticmethod
    def _extract_content(data) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise EmptyResponseError("Provider returned an empty response")
        return content

    async def complete(self, messages: List[ChatMessage], temperature: float = 0.7) -> str:
        """Send messages to the provider and return the first choice's text.

        Args:
            messages: Non-empty ordered list of chat messages.
            temperature: Sampling temperature in [0, 1].

        Returns:
            str: Non-empty completion text.

        Raises:
            ValueError: If temperature is out of range or messages is empty.
            NotConfiguredError: If is_configured() is False (no network activity happens).
            AuthFailureError, RateLimitedError, ProviderUnavailableError, ProviderError: non-2xx status.
            NetworkError: Transport failure or timeout.
            EmptyResponseError: 2xx without usable content.
        """
        if not (0.0 <= temperature <= 1.0):
            raise ValueError(f"temperature must be between 0.0 and 1.0, got: {temperature}")
        if not messages:
            raise ValueError("messages must not be empty")
        if not self.is_configured():
            raise NotConfiguredError(
                "🔑 Text provider API key not configured. Please add GROQ_API_KEY to your .env file."
            )

        await self._wait_for_rate_limit()

        payload = self._build_payload(messages, temperature)
        logger.debug(
            f"Sending {len(messages)} messages to {self.model} (temperature={temperature})",
            extra={"provider": self.base_url},
        )

        try:
            if self._session is not None:
                content = await self._post(self._session, payload)
            else:
                async with aiohttp.ClientSession() as session:
                    content = await self._post(session, payload)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Request to text provider timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error connecting to text provider: {e}") from e

        logger.debug(f"Received {len(content)} characters from {self.model}")
        return content
