"""Exceptions raised by the processing pipeline."""


class PipelineError(Exception):
    """Base class for failures while processing one boat photo."""


class MissingCredential(PipelineError):
    """The Gemini API key is not configured."""


class SourceRejected(PipelineError):
    """The analysis model judged the source photo unusable."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class ImageGenerationError(PipelineError):
    """The image model returned no image data."""
