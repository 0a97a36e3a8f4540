"""Exceptions raised by the grotto agent."""
from __future__ import annotations

from typing import Optional


class GrottoError(Exception):
    """Base class for agent errors."""


class ConfigError(GrottoError):
    """Configuration could not be loaded or failed validation."""


class SampleReadError(GrottoError):
    """The CPU counter source could not be read this cycle."""


class ParseError(GrottoError):
    """A counter line contained a token that is not a non-negative integer."""


class DeliveryError(GrottoError):
    """A payload could not be delivered to the collector."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
