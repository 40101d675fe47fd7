"""Domain errors and failure typing."""


class StoremapError(Exception):
    """Base class for storemap failures."""

    error_code = "STOREMAP_ERROR"


class ConfigError(StoremapError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(StoremapError):
    """Raised for stage failures that abort the current operation."""

    error_code = "STAGE_ERROR"


class UpstreamError(StageError):
    """Raised when the table service answers with a non-zero code."""

    error_code = "UPSTREAM_ERROR"


class CompletionError(StageError):
    """Raised when the completion service fails or returns no content."""

    error_code = "COMPLETION_ERROR"


class SummaryCancelled(StoremapError):
    """Raised when an in-flight summary request was cancelled by the user."""

    error_code = "SUMMARY_CANCELLED"
