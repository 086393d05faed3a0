"""Basic-auth tokens for SureLC accounts read from the environment."""

from __future__ import annotations

import base64
from dataclasses import dataclass

from agencytree.config import MissingConfigurationError, first_env_var


def basic_auth_header(user: str, password: str) -> str:
    raw = f"{user}:{password}".encode()
    return "Basic " + base64.b64encode(raw).decode("ascii")


@dataclass(frozen=True, slots=True)
class EnvCredentialProvider:
    """Resolve ``SURELC_USER_{ACCOUNT}``/``SURELC_PASS_{ACCOUNT}`` into a token.

    User/password pairs win over a pre-minted ``SURELC_AUTH_{ACCOUNT}`` token so
    password rotations take effect. The unsuffixed ``SURELC_USER``/``SURELC_PASS``
    pair is the fallback for every account.
    """

    def token_for(self, account: str) -> str:
        suffix = account.strip().upper()
        user = first_env_var(f"SURELC_USER_{suffix}", "SURELC_USER")
        password = first_env_var(f"SURELC_PASS_{suffix}", "SURELC_PASS")
        if user and password:
            return basic_auth_header(user, password)
        token = first_env_var(f"SURELC_AUTH_{suffix}", "SURELC_AUTH")
        if token:
            return token
        raise MissingConfigurationError(f"Missing SureLC credentials for account {suffix}")


@dataclass(frozen=True, slots=True)
class StaticCredentialProvider:
    token: str

    def token_for(self, account: str) -> str:  # noqa: ARG002
        return self.token
