"""Synchronization, view and upload defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import first_env_var, float_env_var, int_env_var
from .errors import ConfigurationError

DEFAULT_PAGE_SIZE = 1000
DEFAULT_SINCE = "2000-01-01T00:00:00"
DEFAULT_FAN_OUT_INTERVAL_SECONDS = 0.05
DEFAULT_CHILDREN_PAGE_SIZE = 10
DEFAULT_LAYOUT_DEBOUNCE_SECONDS = 0.06
DEFAULT_UPLOAD_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_POLL_INTERVAL_SECONDS = 2.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    since: str = DEFAULT_SINCE
    fan_out_interval_seconds: float = DEFAULT_FAN_OUT_INTERVAL_SECONDS


@dataclass(frozen=True, slots=True)
class ViewConfig:
    children_page_size: int = DEFAULT_CHILDREN_PAGE_SIZE
    layout_debounce_seconds: float = DEFAULT_LAYOUT_DEBOUNCE_SECONDS


@dataclass(frozen=True, slots=True)
class UploadConfig:
    base_url: str | None = None
    upload_path: str = "/hierarchy/upload"
    status_path: str = "/hierarchy/upload/{job_id}/status"
    max_bytes: int = DEFAULT_UPLOAD_MAX_BYTES
    allowed_extensions: tuple[str, ...] = (".csv", ".xlsx", ".xls")
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS


def get_sync_config() -> SyncConfig:
    page_size = int_env_var("AGENCYTREE_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    if page_size < 1:
        raise ConfigurationError("AGENCYTREE_PAGE_SIZE must be positive")
    return SyncConfig(
        page_size=page_size,
        since=first_env_var("AGENCYTREE_SINCE") or DEFAULT_SINCE,
    )


def get_view_config() -> ViewConfig:
    children_page_size = int_env_var("AGENCYTREE_CHILDREN_PAGE_SIZE", DEFAULT_CHILDREN_PAGE_SIZE)
    if children_page_size < 1:
        raise ConfigurationError("AGENCYTREE_CHILDREN_PAGE_SIZE must be positive")
    return ViewConfig(
        children_page_size=children_page_size,
        layout_debounce_seconds=float_env_var(
            "AGENCYTREE_LAYOUT_DEBOUNCE_SECONDS", DEFAULT_LAYOUT_DEBOUNCE_SECONDS
        ),
    )


def get_upload_config() -> UploadConfig:
    poll_interval = float_env_var(
        "AGENCYTREE_UPLOAD_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
    )
    if poll_interval <= 0:
        raise ConfigurationError("AGENCYTREE_UPLOAD_POLL_INTERVAL_SECONDS must be positive")
    return UploadConfig(
        base_url=first_env_var("AGENCYTREE_UPLOAD_BASE"),
        max_bytes=int_env_var("AGENCYTREE_UPLOAD_MAX_BYTES", DEFAULT_UPLOAD_MAX_BYTES),
        poll_interval_seconds=poll_interval,
    )
