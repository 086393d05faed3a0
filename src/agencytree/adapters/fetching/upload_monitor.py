"""Submit a hierarchy file and poll the server-side job until it settles."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agencytree.config.sync import UploadConfig
from agencytree.domain.model import FileValidationResult, UploadJob, UploadStatus

from .errors import (
    InvalidTransitionError,
    PayloadError,
    UploadJobFailedError,
    UploadValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from agencytree.domain.model import UploadFile

    from .pipeline import FetchPipeline

log = getLogger(__name__)

type ProgressCallback = Callable[[UploadJob], None]

_SIZE_WARNING_RATIO = 0.8


class UploadState(StrEnum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


# ``None`` is the state before anything was submitted.
TRANSITIONS: dict[UploadState | None, frozenset[UploadState]] = {
    None: frozenset({UploadState.SUBMITTED}),
    UploadState.SUBMITTED: frozenset({UploadState.POLLING, UploadState.FAILED}),
    UploadState.POLLING: frozenset(
        {UploadState.POLLING, UploadState.COMPLETED, UploadState.FAILED}
    ),
    UploadState.COMPLETED: frozenset(),
    UploadState.FAILED: frozenset(),
}


class UploadStatusPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | int
    status: str
    progress: float | None = None
    total_records: int | None = Field(default=None, alias="totalRecords")
    processed_records: int | None = Field(default=None, alias="processedRecords")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")

    def to_job(self, *, poll_interval: float) -> UploadJob:
        progress = self.model_dump(by_alias=True, exclude={"id", "status"})
        return UploadJob(
            id=str(self.id),
            status=UploadStatus.parse_upstream(self.status),
            progress=MappingProxyType(progress),
            poll_interval=poll_interval,
        )


def validate_upload_file(
    file: UploadFile,
    config: UploadConfig | None = None,
) -> FileValidationResult:
    """Check type, emptiness and size before anything is sent."""

    effective = config or UploadConfig()
    errors: list[str] = []
    warnings: list[str] = []

    if file.extension not in effective.allowed_extensions:
        allowed = ", ".join(effective.allowed_extensions)
        errors.append(f"Unsupported file type {file.extension or '(none)'}; expected {allowed}")
    if file.size == 0:
        errors.append("File is empty")
    elif file.size > effective.max_bytes:
        errors.append(f"File exceeds {effective.max_bytes} bytes ({file.size} bytes)")
    elif file.size > effective.max_bytes * _SIZE_WARNING_RATIO:
        warnings.append("File is close to the upload size limit")

    return FileValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


class UploadJobMonitor:
    """Single-use state machine: submitted → polling → completed | failed."""

    def __init__(
        self,
        pipeline: FetchPipeline,
        *,
        config: UploadConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._config = config or UploadConfig()
        self._on_progress = on_progress
        self._state: UploadState | None = None
        self._job: UploadJob | None = None
        self.history: list[UploadJob] = []

    @property
    def state(self) -> UploadState | None:
        return self._state

    @property
    def job(self) -> UploadJob | None:
        return self._job

    async def submit(self, file: UploadFile) -> UploadJob:
        if self._state is not None:
            raise InvalidTransitionError("Upload monitor has already been used")

        validation = validate_upload_file(file, self._config)
        if not validation.is_valid:
            log.warning("Rejected upload %s: %s", file.filename, "; ".join(validation.errors))
            raise UploadValidationError(validation.errors)
        for warning in validation.warnings:
            log.warning("Upload %s: %s", file.filename, warning)

        body = await self._pipeline.post_file(self._config.upload_path, file)
        job = self._parse(body, path=self._config.upload_path)
        self._transition(UploadState.SUBMITTED)
        log.info("Submitted %s as upload job %s", file.filename, job.id)
        self._observe(job)

        if job.status is UploadStatus.FAILED:
            self._transition(UploadState.FAILED)
            raise UploadJobFailedError(job)

        self._transition(UploadState.POLLING)
        return await self._poll(job.id)

    async def _poll(self, job_id: str) -> UploadJob:
        status_path = self._config.status_path.format(job_id=job_id)
        while True:
            await asyncio.sleep(self._config.poll_interval_seconds)
            # status reads must not be served from the response cache
            self._pipeline.cache.invalidate(self._pipeline.cache_key(status_path))
            try:
                body = await self._pipeline.get_json(status_path)
                job = self._parse(body, path=status_path)
            except Exception:
                self._transition(UploadState.FAILED)
                log.exception("Polling upload job %s failed", job_id)
                raise
            self._observe(job)

            if job.status is UploadStatus.COMPLETED:
                self._transition(UploadState.COMPLETED)
                log.info("Upload job %s completed", job.id)
                return job
            if job.status is UploadStatus.FAILED:
                self._transition(UploadState.FAILED)
                log.error("Upload job %s failed", job.id)
                raise UploadJobFailedError(job)
            self._transition(UploadState.POLLING)

    def _observe(self, job: UploadJob) -> None:
        self._job = job
        self.history.append(job)
        if self._on_progress is not None:
            self._on_progress(job)

    def _parse(self, body: object, *, path: str) -> UploadJob:
        try:
            payload = UploadStatusPayload.model_validate(body)
        except ValidationError as exc:
            raise PayloadError(f"Unexpected upload status payload: {exc}", path=path) from exc
        return payload.to_job(poll_interval=self._config.poll_interval_seconds)

    def _transition(self, target: UploadState) -> None:
        allowed = TRANSITIONS[self._state]
        if target not in allowed:
            raise InvalidTransitionError(f"Cannot move upload from {self._state} to {target}")
        self._state = target
