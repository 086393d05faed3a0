"""SureLC configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .env import first_env_var
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

SURELC_BASE_URL = "https://surelc.surancebay.com/sbweb/ws"
SURELC_TIMEOUT_SECONDS = 30.0
DEFAULT_FIRM_ID = "323"


class SureLcAccount(StrEnum):
    EQUITA = "EQUITA"
    QUILITY = "QUILITY"
    GENERAL = "GENERAL"


@dataclass(frozen=True)
class SureLcConfig:
    """Holds SureLC endpoint and account selection values."""

    base_url: str
    account: SureLcAccount
    firm_id: str
    resilience: ResilienceConfig


def parse_account(value: str | None) -> SureLcAccount:
    if value is None or not value.strip():
        return SureLcAccount.EQUITA
    try:
        return SureLcAccount(value.strip().upper())
    except ValueError as exc:
        choices = ", ".join(account.value for account in SureLcAccount)
        raise ConfigurationError(f"Unknown SureLC account {value!r} (expected {choices})") from exc


def get_surelc_config(
    *,
    account: str | SureLcAccount | None = None,
    firm_id: str | None = None,
    resilience: ResilienceConfig | None = None,
) -> SureLcConfig:
    resolved_account = (
        account
        if isinstance(account, SureLcAccount)
        else parse_account(account or first_env_var("SURELC_ACCOUNT"))
    )
    base_url = first_env_var("SURELC_BASE") or SURELC_BASE_URL
    resolved_firm_id = (
        firm_id
        or first_env_var(f"SURELC_FIRM_ID_{resolved_account}", "SURELC_FIRM_ID")
        or DEFAULT_FIRM_ID
    )
    return SureLcConfig(
        base_url=base_url,
        account=resolved_account,
        firm_id=str(resolved_firm_id),
        resilience=resilience
        or ResilienceConfig(
            name="surelc",
            base_url=base_url,
            timeout_seconds=SURELC_TIMEOUT_SECONDS,
            ratelimit=RateLimit(min_interval_seconds=0.05),
            cache=CacheConfig(ttl_seconds=30.0),
            default_headers={"Accept": "application/json"},
        ),
    )
