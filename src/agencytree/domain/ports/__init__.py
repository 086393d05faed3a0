"""Ports implemented by adapters."""

from __future__ import annotations

from .transport import CredentialProvider, Transport, TransportResponse

__all__ = ["CredentialProvider", "Transport", "TransportResponse"]
