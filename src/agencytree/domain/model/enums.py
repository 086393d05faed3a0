"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RelationStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: str | None) -> RelationStatus:
        """Normalise an upstream status string; unknown or missing values are pending."""

        if value is None:
            return cls.PENDING
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.PENDING


class UplineSource(StrEnum):
    REAL = "real"
    SYNTHETIC = "synthetic"


class UploadStatus(StrEnum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {UploadStatus.COMPLETED, UploadStatus.FAILED}

    @classmethod
    def parse_upstream(cls, value: str) -> UploadStatus:
        """Map the job-status vocabulary of the upload endpoint onto our four states."""

        normalized = value.strip().lower().replace("-", "_")
        if normalized in {"queued", "submitted", "pending", "waiting"}:
            return cls.QUEUED
        if normalized in {"completed", "complete", "done", "success", "succeeded"}:
            return cls.COMPLETED
        if normalized in {"failed", "failure", "error", "errored", "cancelled", "canceled"}:
            return cls.FAILED
        return cls.PROCESSING
