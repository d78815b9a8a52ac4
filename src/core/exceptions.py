"""
Core exception hierarchy for RivalMap.

Provides standardized exception types split into three failure classes:
validation (caller fixes input), authentication (caller re-authenticates)
and dependency (backing store or collaborator failed).
"""

import re
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from src.search.validation import Violation


# =============================================================================
# Base Exceptions
# =============================================================================


class RivalMapError(Exception):
    """Base exception for all RivalMap errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(RivalMapError):
    """
    Transient errors that may succeed on a later attempt.

    Examples: timeouts, store temporarily unavailable.
    """

    pass


class PermanentError(RivalMapError):
    """
    Errors that won't be fixed by retrying.

    Examples: invalid input, missing credentials.
    """

    pass


# =============================================================================
# Request Errors
# =============================================================================


class SearchValidationError(PermanentError):
    """Raised when a search request violates one or more field rules."""

    def __init__(self, violations: list["Violation"]):
        self.violations = list(violations)
        super().__init__(
            "Validation error",
            {v.field: v.message for v in self.violations},
        )

    @property
    def fields(self) -> dict[str, str]:
        """Violation messages keyed by field name."""
        return {v.field: v.message for v in self.violations}


class AuthenticationError(PermanentError):
    """Raised when a request carries no usable credentials."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


# =============================================================================
# Dependency Errors
# =============================================================================


class DependencyError(RetryableError):
    """Raised when a backing store or external collaborator fails."""

    def __init__(
        self,
        component: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.component = component
        super().__init__(f"[{component}] {message}", details)


class DependencyTimeoutError(DependencyError):
    """Raised when a round trip to a dependency exceeds its timeout."""

    def __init__(self, component: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            component,
            f"No response within {timeout_seconds:g}s",
            {"timeout_seconds": timeout_seconds},
        )


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


# =============================================================================
# Sanitizing
# =============================================================================

_URL_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9+.-]*://\S+")
_SECRET_PATTERN = re.compile(
    r"(?i)\b(password|passwd|pwd|token|secret|apikey|api_key|key)\s*[=:]\s*\S+"
)
_JWT_PATTERN = re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]+")

MAX_ERROR_MESSAGE_LENGTH = 200


def sanitize_error_message(exc: BaseException) -> str:
    """
    Reduce an exception to a message that is safe to return to a client.

    Keeps the first line only, redacts URLs, credential assignments and JWTs,
    and truncates the result.
    """
    if isinstance(exc, RivalMapError):
        text = exc.message
    else:
        text = str(exc)

    lines = text.strip().splitlines()
    text = lines[0] if lines else ""
    text = _URL_PATTERN.sub("[redacted-url]", text)
    text = _JWT_PATTERN.sub("[redacted-token]", text)
    text = _SECRET_PATTERN.sub(lambda m: f"{m.group(1)}=[redacted]", text)
    text = text[:MAX_ERROR_MESSAGE_LENGTH].strip()

    return text or "Unknown error"
