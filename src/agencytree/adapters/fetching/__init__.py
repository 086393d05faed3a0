"""Rate-limited, de-duplicating fetch layer."""

from __future__ import annotations

from .errors import (
    FetchError,
    InvalidTransitionError,
    PaginationError,
    PayloadError,
    TransportError,
    UploadJobFailedError,
    UploadValidationError,
)
from .fan_out import FanOutFetcher, FanOutResult, FetchFailure, FetchOutcome, FetchSuccess
from .pagination import PaginatedFetcher, normalize_timestamp
from .pipeline import FetchPipeline, credential_identity
from .rate_limiter import RateLimiter
from .request_cache import CacheStats, RequestCache
from .upload_monitor import UploadJobMonitor, UploadState, validate_upload_file

__all__ = [
    "CacheStats",
    "FanOutFetcher",
    "FanOutResult",
    "FetchError",
    "FetchFailure",
    "FetchOutcome",
    "FetchPipeline",
    "FetchSuccess",
    "InvalidTransitionError",
    "PaginatedFetcher",
    "PaginationError",
    "PayloadError",
    "RateLimiter",
    "RequestCache",
    "TransportError",
    "UploadJobFailedError",
    "UploadJobMonitor",
    "UploadState",
    "UploadValidationError",
    "credential_identity",
    "normalize_timestamp",
    "validate_upload_file",
]
