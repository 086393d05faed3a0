"""Flat relation records and producer labels as delivered by the upstream service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import RelationStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

DETAIL_SECTIONS = ("licenses", "appointments", "contracts")


@dataclass(frozen=True, slots=True)
class RelationRecord:
    """One producer-to-agency relationship row."""

    producer_id: str
    firm_id: str
    status: RelationStatus = RelationStatus.PENDING
    branch_code: str | None = None
    added_on: datetime | None = None
    upline: str | None = None
    npn: str | None = None
    errors: str = ""
    warnings: str = ""

    @property
    def has_errors(self) -> bool:
        return bool(self.errors.strip())

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings.strip())


@dataclass(frozen=True, slots=True)
class ProducerLabel:
    """Display detail for a producer, fetched separately from its relation."""

    producer_id: str
    name: str
    npn: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    placeholder: bool = field(default=False, compare=False)

    @classmethod
    def fallback(cls, producer_id: str) -> ProducerLabel:
        return cls(producer_id=producer_id, name=f"Producer {producer_id}", placeholder=True)


type DetailRows = tuple[Mapping[str, object], ...]


@dataclass(frozen=True, slots=True)
class ProducerDetail:
    """License, appointment and contract rows for one producer.

    Sections that could not be fetched are named in ``missing`` and left empty.
    """

    producer_id: str
    licenses: DetailRows = ()
    appointments: DetailRows = ()
    contracts: DetailRows = ()
    missing: frozenset[str] = frozenset()

    @classmethod
    def unavailable(cls, producer_id: str) -> ProducerDetail:
        return cls(producer_id=producer_id, missing=frozenset(DETAIL_SECTIONS))

    @property
    def complete(self) -> bool:
        return not self.missing

    def rows(self, section: str) -> DetailRows:
        if section == "licenses":
            return self.licenses
        if section == "appointments":
            return self.appointments
        if section == "contracts":
            return self.contracts
        raise ValueError(f"Unknown detail section {section!r}")

    def status_counts(self, section: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for row in self.rows(section):
            status = str(row.get("status") or "").strip() or "unknown"
            counts[status] = counts.get(status, 0) + 1
        return counts
