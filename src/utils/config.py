"""Configuration management for Pantry Chef.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults

API keys are NOT required at import time. A missing or malformed key surfaces
as NotConfiguredError when a provider is actually called.
"""

import os

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Text generation provider (OpenAI-compatible chat completions, Groq by default)
        self.GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
        self.TEXT_API_BASE_URL: str = os.getenv("TEXT_API_BASE_URL", "https://api.groq.com/openai/v1")
        self.TEXT_MODEL: str = os.getenv("TEXT_MODEL", "openai/gpt-oss-20b")
        # Expected key prefix for the format check. Empty string disables the check.
        self.TEXT_API_KEY_PREFIX: str = os.getenv("TEXT_API_KEY_PREFIX", "gsk_")
        # Some self-hosted endpoints accept anonymous requests
        self.TEXT_REQUIRES_AUTH: bool = _env_bool("TEXT_REQUIRES_AUTH", "true")
        # Max Output Tokens: a full recipe with instructions fits in 2000
        self.MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "2000"))
        self.TOP_P: float = float(os.getenv("TOP_P", "0.95"))
        # Temperature: higher for recipes (creative), lower for tips (factual)
        self.RECIPE_TEMPERATURE: float = float(os.getenv("RECIPE_TEMPERATURE", "0.8"))
        self.TIPS_TEMPERATURE: float = float(os.getenv("TIPS_TEMPERATURE", "0.7"))
        # Throttle: minimum seconds between two requests from the same client
        self.MIN_REQUEST_INTERVAL_SECONDS: float = float(os.getenv("MIN_REQUEST_INTERVAL_SECONDS", "2.0"))
        # Per-request timeout for provider calls (LLM round trips are slow)
        self.REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))

        # Image generation provider: "pollinations" (no auth) or "gemini" (GEMINI_API_KEY)
        self.IMAGE_PROVIDER: str = os.getenv("IMAGE_PROVIDER", "pollinations").lower()
        self.POLLINATIONS_BASE_URL: str = os.getenv("POLLINATIONS_BASE_URL", "https://pollinations.ai/p/")
        self.POLLINATIONS_MODEL: str = os.getenv("POLLINATIONS_MODEL", "flux")
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        self.GEMINI_IMAGE_MODEL: str = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
        # Image style: food-photography, minimalist, rustic, elegant
        self.IMAGE_STYLE: str = os.getenv("IMAGE_STYLE", "food-photography")
        # Image quality: standard (768px) or high (1024px)
        self.IMAGE_QUALITY: str = os.getenv("IMAGE_QUALITY", "high")
        # Delay before the background image attempt, leaves room for the recipe to render first
        self.IMAGE_ENHANCEMENT_DELAY_SECONDS: float = float(os.getenv("IMAGE_ENHANCEMENT_DELAY_SECONDS", "0.1"))

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If a setting is out of range or not one of its allowed values.
        """
        if self.IMAGE_PROVIDER not in ("pollinations", "gemini"):
            raise ValueError(
                f"IMAGE_PROVIDER must be 'pollinations' or 'gemini', got: {self.IMAGE_PROVIDER}"
            )
        if self.IMAGE_STYLE not in ("food-photography", "minimalist", "rustic", "elegant"):
            raise ValueError(
                f"IMAGE_STYLE must be 'food-photography', 'minimalist', 'rustic' or 'elegant', got: {self.IMAGE_STYLE}"
            )
        if self.IMAGE_QUALITY not in ("standard", "high"):
            raise ValueError(f"IMAGE_QUALITY must be 'standard' or 'high', got: {self.IMAGE_QUALITY}")
        for name in ("RECIPE_TEMPERATURE", "TIPS_TEMPERATURE", "TOP_P"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be between 0.0 and 1.0, got: {value}")
        if self.MAX_OUTPUT_TOKENS < 256:
            raise ValueError(f"MAX_OUTPUT_TOKENS must be at least 256, got: {self.MAX_OUTPUT_TOKENS}")
        if self.MIN_REQUEST_INTERVAL_SECONDS < 0:
            raise ValueError(
                f"MIN_REQUEST_INTERVAL_SECONDS must be >= 0, got: {self.MIN_REQUEST_INTERVAL_SECONDS}"
            )
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError(f"REQUEST_TIMEOUT_SECONDS must be positive, got: {self.REQUEST_TIMEOUT_SECONDS}")
        if self.IMAGE_ENHANCEMENT_DELAY_SECONDS < 0:
            raise ValueError(
                f"IMAGE_ENHANCEMENT_DELAY_SECONDS must be >= 0, got: {self.IMAGE_ENHANCEMENT_DELAY_SECONDS}"
            )


# Create module-level config instance and validate immediately
config = Config()
config.validate()
