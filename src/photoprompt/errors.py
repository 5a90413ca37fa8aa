from typing import Optional


class GenerationError(Exception):
    """Base class for every failure of the generation pipeline."""


class ValidationError(GenerationError):
    """The request cannot be submitted, e.g. the prompt is blank."""


class UploadError(GenerationError):
    """A local image could not be read or stored."""


class ProviderError(GenerationError):
    """The primary provider answered with an error status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnrecognizedImageShapeError(ProviderError):
    """An image descriptor matched none of the known layouts."""


class NoImageError(GenerationError):
    """Neither provider returned an image."""


class CleanupError(GenerationError):
    """A storage object could not be deleted. Logged, never raised to callers."""

    def __init__(self, key: str, cause: object):
        super().__init__(f"Failed to delete {key}: {cause}")
        self.key = key
        self.cause = cause


class GenerationInProgressError(GenerationError):
    """A submission is already pending on this orchestrator."""
