"""Upload job values."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from .enums import UploadStatus

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class UploadFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: Path | str) -> UploadFile:
        file_path = Path(path)
        content_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            filename=file_path.name,
            content=file_path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )


@dataclass(frozen=True, slots=True)
class UploadJob:
    id: str
    status: UploadStatus
    progress: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    poll_interval: float = 2.0


@dataclass(frozen=True, slots=True)
class FileValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
