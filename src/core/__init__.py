"""
Core infrastructure modules for RivalMap.

Provides common utilities used across the application:
- exceptions: Standardized exception hierarchy and error sanitizing
- responses: JSON success/error envelopes shared by routes and interceptors
- rate_limiter: Sliding-window rate limiters (Redis or in-memory)
"""

from src.core.exceptions import (
    RivalMapError,
    RetryableError,
    PermanentError,
    SearchValidationError,
    AuthenticationError,
    DependencyError,
    DependencyTimeoutError,
    ConfigurationError,
    sanitize_error_message,
)

__all__ = [
    "RivalMapError",
    "RetryableError",
    "PermanentError",
    "SearchValidationError",
    "AuthenticationError",
    "DependencyError",
    "DependencyTimeoutError",
    "ConfigurationError",
    "sanitize_error_message",
]
