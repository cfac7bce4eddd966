"""Enums for wine records, enrichment outcomes and recommendations."""

from enum import Enum


class EnrichmentStatus(str, Enum):
    """Enrichment lifecycle of a wine record."""

    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Classification of pipeline outcomes that are not a plain success."""

    PARSE_SKIP = "parse_skip"
    PROVIDER_ERROR = "provider_error"
    BUDGET_EXHAUSTED = "budget_exhausted"
    QUALITY_GATE_FAILURE = "quality_gate_failure"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"
    STORAGE_WRITE_ERROR = "storage_write_error"
    LOG_WRITE_ERROR = "log_write_error"
    TIMEOUT = "timeout"


class MatchType(str, Enum):
    """Recommendation tag."""

    PERFECT = "perfect"
    SURPRISE = "surprise"


class StopReason(str, Enum):
    """Why a batch run ended."""

    COMPLETED = "completed"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"


class PriceRange(str, Enum):
    """Guest price preference."""

    BUDGET = "budget"
    MID_RANGE = "mid-range"
    PREMIUM = "premium"
    LUXURY = "luxury"
