from __future__ import annotations

import base64

import pytest

from agencytree.adapters.surelc import EnvCredentialProvider, basic_auth_header
from agencytree.config import MissingConfigurationError


def test_basic_auth_header_encodes_pair() -> None:
    expected = "Basic " + base64.b64encode(b"user:pass").decode()

    assert basic_auth_header("user", "pass") == expected


def test_account_specific_credentials_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SURELC_USER_QUILITY", "q-user")
    monkeypatch.setenv("SURELC_PASS_QUILITY", "q-pass")
    monkeypatch.setenv("SURELC_USER", "generic")
    monkeypatch.setenv("SURELC_PASS", "generic-pass")

    token = EnvCredentialProvider().token_for("quility")

    assert token == basic_auth_header("q-user", "q-pass")


def test_generic_credentials_are_the_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SURELC_USER", "generic")
    monkeypatch.setenv("SURELC_PASS", "generic-pass")

    assert EnvCredentialProvider().token_for("EQUITA") == basic_auth_header(
        "generic", "generic-pass"
    )


def test_pre_minted_token_is_used_when_no_pair(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SURELC_AUTH_GENERAL", "Basic minted")

    assert EnvCredentialProvider().token_for("GENERAL") == "Basic minted"


def test_missing_credentials_raise() -> None:
    with pytest.raises(MissingConfigurationError, match="EQUITA"):
        EnvCredentialProvider().token_for("EQUITA")
