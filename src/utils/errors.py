"""Error taxonomy for Pantry Chef.

Provider clients, the normalizer and the formatter raise the most specific
exception they can detect. AIService is the only place that turns them into
user-facing RecipeGenerationError messages.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Kinds of failure, used by the orchestrator to pick a user message."""

    INVALID_INPUT = "invalid_input"
    NOT_CONFIGURED = "not_configured"
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_ERROR = "provider_error"
    NETWORK = "network"
    EMPTY_RESPONSE = "empty_response"
    FORMAT = "format"
    SCHEMA = "schema"
    UNKNOWN = "unknown"


class PantryChefError(Exception):
    """Base exception for Pantry Chef."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class InvalidInputError(PantryChefError):
    """Raised when a request is rejected before any provider is called."""

    category = ErrorCategory.INVALID_INPUT


class NotConfiguredError(PantryChefError):
    """Raised when a provider credential is missing or malformed."""

    category = ErrorCategory.NOT_CONFIGURED


class ProviderError(PantryChefError):
    """Raised when a provider answers with a non-2xx status."""

    category = ErrorCategory.PROVIDER_ERROR
    retryable = False

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.provider_message = message or "Unknown error occurred"
        super().__init__(f"HTTP {status_code}: {self.provider_message}")


class AuthFailureError(ProviderError):
    """401: credential rejected by the provider."""

    category = ErrorCategory.AUTH_FAILURE


class RateLimitedError(ProviderError):
    """429: caller may retry after a delay. Clients never retry on their own."""

    category = ErrorCategory.RATE_LIMITED
    retryable = True


class ProviderUnavailableError(ProviderError):
    """500/502/503: transient provider outage."""

    category = ErrorCategory.PROVIDER_UNAVAILABLE
    retryable = True


class NetworkError(PantryChefError):
    """Raised on transport failure before any HTTP status is known (includes timeouts)."""

    category = ErrorCategory.NETWORK


class EmptyResponseError(PantryChefError):
    """Raised when the provider returns 2xx but no usable content."""

    category = ErrorCategory.EMPTY_RESPONSE


class FormatError(PantryChefError):
    """Raised when no JSON object can be located or parsed in a reply."""

    category = ErrorCategory.FORMAT


class SchemaError(PantryChefError):
    """Raised when parsed JSON lacks a required Recipe field.

    Messages of the subclasses are already user-presentable.
    """

    category = ErrorCategory.SCHEMA


class MissingTitleError(SchemaError):
    def __init__(self, message: str = "📝 Recipe missing title - please try generating again.") -> None:
        super().__init__(message)


class MissingIngredientsError(SchemaError):
    def __init__(self, message: str = "🥕 Recipe missing ingredients - please try generating again.") -> None:
        super().__init__(message)


class MissingInstructionsError(SchemaError):
    def __init__(self, message: str = "📋 Recipe missing instructions - please try generating again.") -> None:
        super().__init__(message)


class RecipeGenerationError(PantryChefError):
    """User-facing failure of a recipe generation call.

    The original exception is kept as __cause__ for diagnostics.
    """

    def __init__(self, message: str, category: ErrorCategory, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.category = category
        self.stage = stage


_STATUS_ERRORS = {
    401: AuthFailureError,
    429: RateLimitedError,
    500: ProviderUnavailableError,
    502: ProviderUnavailableError,
    503: ProviderUnavailableError,
}


def provider_error_for_status(status_code: int, message: Optional[str] = None) -> ProviderError:
    """Build the ProviderError subclass matching an HTTP status code.

    Args:
        status_code: HTTP status returned by the provider.
        message: Error text from the provider's {"error": {"message": ...}} body, if any.

    Returns:
        AuthFailureError, RateLimitedError, ProviderUnavailableError, or a plain ProviderError.
    """
    error_cls = _STATUS_ERRORS.get(status_code, ProviderError)
    return error_cls(status_code, message)
