"""Exception taxonomy for the fetch layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agencytree.domain.model import UploadJob


class FetchError(RuntimeError):
    """Base class for failures talking to the upstream service."""


class TransportError(FetchError):
    """Raised for non-2xx responses; carries the status and textual body."""

    def __init__(self, status: int, body: object, *, path: str | None = None) -> None:
        self.status = status
        self.body = body
        self.path = path
        super().__init__(f"HTTP {status}: {_body_text(body)}")


class PayloadError(FetchError):
    """Raised when an upstream payload does not have the expected shape."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class PaginationError(FetchError):
    """Raised when one page of a paginated fetch fails; no partial result survives."""

    def __init__(self, message: str, *, offset: int, path: str) -> None:
        super().__init__(message)
        self.offset = offset
        self.path = path


class UploadValidationError(ValueError):
    """Raised before any request when an upload file is rejected."""

    def __init__(self, errors: tuple[str, ...] | list[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("; ".join(self.errors) or "Invalid upload file")


class UploadJobFailedError(FetchError):
    """Raised when the server reports an upload job as failed."""

    def __init__(self, job: UploadJob) -> None:
        self.job = job
        super().__init__(f"Upload job {job.id} failed")


class InvalidTransitionError(RuntimeError):
    """Raised when a state machine is driven along an undefined edge."""


def _body_text(body: object) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)
