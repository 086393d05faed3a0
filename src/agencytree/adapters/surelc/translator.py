"""Translate SureLC payloads into domain records."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger

from agencytree.domain.model import ProducerLabel, RelationRecord, RelationStatus

from .schema import ProducerPayload, RelationPayload

log = getLogger(__name__)


def _parse_added_on(value: str | None) -> datetime | None:
    if value is None:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        log.debug("Ignoring unparseable addedOn value %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _optional_text(value: str | int | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_relation(payload: object) -> RelationRecord:
    model = RelationPayload.model_validate(payload)
    return relation_from_model(model)


def relation_from_model(model: RelationPayload) -> RelationRecord:
    return RelationRecord(
        producer_id=str(model.producer_id),
        firm_id=str(model.ga_id),
        status=RelationStatus.parse(model.status),
        branch_code=_optional_text(model.branch_code),
        added_on=_parse_added_on(model.added_on or model.ts),
        upline=_optional_text(model.upline),
        npn=_optional_text(model.npn),
        errors=model.errors or "",
        warnings=model.warnings or "",
    )


def parse_producer_label(payload: object, *, producer_id: str | None = None) -> ProducerLabel:
    return label_from_model(ProducerPayload.model_validate(payload), producer_id=producer_id)


def label_from_model(model: ProducerPayload, *, producer_id: str | None = None) -> ProducerLabel:
    resolved_id = producer_id or str(model.id)
    name = " ".join(part for part in (model.first_name, model.last_name) if part)
    return ProducerLabel(
        producer_id=resolved_id,
        name=name or f"Producer {resolved_id}",
        npn=_optional_text(model.npn),
        first_name=model.first_name,
        last_name=model.last_name,
    )
