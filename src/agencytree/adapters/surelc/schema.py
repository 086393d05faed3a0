"""SureLC response schemas."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger(__name__)


class SureLcBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "SureLC %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class RelationPayload(SureLcBaseModel):
    """One row of ``/firm/relationship/after/{date}``."""

    id: int | None = None
    ga_id: int | str = Field(alias="gaId")
    producer_id: int | str = Field(alias="producerId")
    branch_code: str | None = Field(default=None, alias="branchCode")
    upline: str | int | None = None
    subscribed: str | None = None
    unsubscription_date: str | None = Field(default=None, alias="unsubscriptionDate")
    status: str | None = None
    added_on: str | None = Field(default=None, alias="addedOn")
    errors: str | None = None
    error_date: str | None = Field(default=None, alias="errorDate")
    warnings: str | None = None
    warning_date: str | None = Field(default=None, alias="warningDate")
    npn: str | int | None = None
    ts: str | None = None

    @field_validator("branch_code", "upline", "npn", "added_on", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class ProducerPayload(SureLcBaseModel):
    """Subset of ``/producer/{id}`` used for display labels."""

    id: int | str
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    npn: str | int | None = None
    email: str | None = None

    @field_validator("first_name", "last_name", "npn", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        return _blank_to_none(value)
