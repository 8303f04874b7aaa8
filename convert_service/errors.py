"""
Error types raised along the conversion pathway.

Every error carries the HTTP status it maps to and can describe itself
as the structured ``details`` object returned to API clients.
"""

import traceback
from typing import Any, Dict, Optional


class ConvertServiceError(Exception):
    """Base class for all conversion errors."""

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def error_name(self) -> str:
        """Name of the underlying failure (the wrapped exception when present)."""
        if self.cause is not None:
            return type(self.cause).__name__
        return type(self).__name__

    @property
    def error_message(self) -> str:
        if self.cause is not None:
            return str(self.cause) or self.message
        return self.message

    def details(self, include_stack: bool = False) -> Dict[str, Any]:
        """
        Build the diagnostic ``details`` object for a 500 response.

        Args:
            include_stack: Add the formatted traceback (never in production)

        Returns:
            Dict with name, message and optionally stack
        """
        details: Dict[str, Any] = {
            "name": self.error_name,
            "message": self.error_message,
        }
        if include_stack:
            origin = self.cause if self.cause is not None else self
            details["stack"] = "".join(
                traceback.format_exception(type(origin), origin, origin.__traceback__)
            )
        return details


class ValidationError(ConvertServiceError):
    """Request supplied no input, both inputs, or a malformed body."""

    status_code = 400


class LaunchError(ConvertServiceError):
    """The headless browser process could not be located or started."""


class RenderTimeoutError(ConvertServiceError):
    """The page never reached network idle (or PDF extraction stalled) in time."""


class ConversionError(ConvertServiceError):
    """A Markdown, PDF or DOCX converter raised a fault."""

    @classmethod
    def wrap(cls, exc: BaseException, message: str = "Conversion failed") -> "ConversionError":
        """Wrap an arbitrary converter failure, keeping its name and message."""
        return cls(f"{message}: {exc}", cause=exc)
