"""Exception types raised across the wine pipeline."""

from wine_pipeline.core.enums import ErrorKind


class WinePipelineError(Exception):
    """Base class for pipeline errors."""

    kind: ErrorKind | None = None


class ConfigError(WinePipelineError):
    """Raised when configuration values are missing or invalid."""


class ProviderError(WinePipelineError):
    """A research or classification provider call failed (transient)."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider


class QualityGateError(WinePipelineError):
    """A provider answered, but the mapped record is not complete enough."""

    kind = ErrorKind.QUALITY_GATE_FAILURE

    def __init__(self, report, record=None, source: str = ""):
        super().__init__(
            f"Quality gate failed at {report.completion_ratio:.0%}, "
            f"missing: {', '.join(report.missing_fields) or 'none'}"
        )
        self.report = report
        self.record = record
        self.source = source


class BudgetExhaustedError(WinePipelineError):
    """The daily call budget has been used up."""

    kind = ErrorKind.BUDGET_EXHAUSTED


class RetryExhaustedError(WinePipelineError):
    """Every attempt of a retried operation failed."""

    kind = ErrorKind.MAX_RETRIES_EXCEEDED

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class StorageWriteError(WinePipelineError):
    """A database write failed."""

    kind = ErrorKind.STORAGE_WRITE_ERROR


class LogWriteError(WinePipelineError):
    """An analytics log row could not be written."""

    kind = ErrorKind.LOG_WRITE_ERROR
