"""Exception types raised by the activity engine."""

from __future__ import annotations


class BloomBrainError(Exception):
    """Base class for engine errors."""


class ConfigurationError(BloomBrainError):
    """No credential is available for the generative service."""


class GenerationError(BloomBrainError):
    """The generative service failed or returned unusable content."""


class ContentSafetyError(GenerationError):
    """The generative service refused the request on safety grounds."""


class SchemaError(GenerationError):
    """A decoded document does not match the descriptor schema."""


class MediaRejected(BloomBrainError):
    """Uploaded media failed validation; ``message`` is safe to show a child."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidTransition(BloomBrainError):
    """A game action was requested in a state that does not allow it."""


class GenerationInProgress(BloomBrainError):
    """A build request is already outstanding for this dashboard."""


__all__ = [
    "BloomBrainError",
    "ConfigurationError",
    "GenerationError",
    "ContentSafetyError",
    "SchemaError",
    "MediaRejected",
    "InvalidTransition",
    "GenerationInProgress",
]
