"""Exceptions shared across the LeafWise backend."""
from typing import Optional


class ImageValidationError(ValueError):
    """Uploaded image is malformed, too large or of an unsupported type."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GeminiConfigurationError(RuntimeError):
    """No usable Gemini API key is configured."""


class ModelOutputError(RuntimeError):
    """The model returned no usable output object."""


class AnalysisError(RuntimeError):
    """A pipeline stage failed. `message` is safe to show to the user."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
