"""SureLC adapter."""

from __future__ import annotations

from .client import SureLcClient, relations_after_path
from .credentials import EnvCredentialProvider, StaticCredentialProvider, basic_auth_header
from .schema import ProducerPayload, RelationPayload
from .translator import label_from_model, parse_producer_label, parse_relation

__all__ = [
    "EnvCredentialProvider",
    "ProducerPayload",
    "RelationPayload",
    "StaticCredentialProvider",
    "SureLcClient",
    "basic_auth_header",
    "label_from_model",
    "parse_producer_label",
    "parse_relation",
    "relations_after_path",
]
