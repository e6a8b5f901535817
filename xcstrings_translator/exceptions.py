"""
Exception classes shared by the catalog loader, the translation backends and
the translation engine.

Kept in their own module so backends and the engine can import them without
importing each other.
"""
from typing import Any, Dict, Optional


class TranslationError(Exception):
    """A single translation call failed.

    ``code`` is a short machine-readable tag (``invalid_api_key``,
    ``rate_limit_exceeded``, ...). The engine never branches on it; it only
    records ``str(error)``.
    """

    UNSUPPORTED_LANGUAGE = "unsupported_language"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INVALID_API_KEY = "invalid_api_key"
    TIMEOUT = "timeout"
    PLACEHOLDER_MISMATCH = "placeholder_mismatch"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code or self.API_ERROR
        self.details = details or {}

    @classmethod
    def unsupported_language(cls, language: str) -> "TranslationError":
        return cls(f"Language '{language}' is not supported by this provider", cls.UNSUPPORTED_LANGUAGE,
                   {"language": language})

    @classmethod
    def invalid_api_key(cls) -> "TranslationError":
        return cls("Invalid API key - please check your credentials", cls.INVALID_API_KEY)

    @classmethod
    def rate_limit_exceeded(cls) -> "TranslationError":
        return cls("Rate limit exceeded - please wait and try again", cls.RATE_LIMIT_EXCEEDED)

    @classmethod
    def network_error(cls, reason: str = "") -> "TranslationError":
        message = "Network error - check your internet connection"
        if reason:
            message = f"{message} ({reason})"
        return cls(message, cls.NETWORK_ERROR)


class ConfigurationError(Exception):
    """The run was misconfigured and cannot start."""


class CatalogParseError(Exception):
    """A catalog document could not be read or does not have the expected shape."""

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path
