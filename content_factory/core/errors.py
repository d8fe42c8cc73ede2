"""Exception hierarchy for the content pipeline.

Stage failures chain the underlying cause (``raise ... from exc``) so callers
can render a message from the stage name and still inspect the transport or
parse error that triggered it.
"""

from __future__ import annotations


class ContentFactoryError(Exception):
    """Root error carrying the pipeline stage that raised it."""

    def __init__(self, message: str = "", stage: str | None = None):
        self.message = message
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigurationError(ContentFactoryError):
    """Missing or invalid service credentials/configuration."""


class CompletionError(ContentFactoryError):
    """The text completion service failed or returned an unusable payload."""


class UpstreamParseError(ContentFactoryError):
    """Completion output is not JSON or does not have the expected shape."""


class AnalysisFailure(ContentFactoryError):
    """Deep article analysis failed as a whole."""


class InsightFailure(ContentFactoryError):
    """Topic insight synthesis failed as a whole."""


class DraftFailure(ContentFactoryError):
    """Article draft generation failed."""


class AssetGenerationError(ContentFactoryError):
    """The image service failed for one image or the cover."""


class BatchItemFailure(ContentFactoryError):
    """One iteration of a batch run failed and was skipped."""

    def __init__(self, index: int, unique_angle: str, cause: BaseException):
        self.index = index
        self.unique_angle = unique_angle
        self.cause = cause
        super().__init__(f"item {index + 1} failed: {cause}", stage="batch")
