"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from src.cycle.dates import to_local_date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PeriBase(BaseModel):
    """Base model with shared config for all Peri wire schemas.

    The backend speaks camelCase JSON; Python code uses snake_case.  Both
    spellings are accepted on input, and ``dump()`` emits camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

    def dump(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def coerce_local_date(value: Any) -> Any:
    """``field_validator`` helper: ISO timestamps become local calendar dates."""
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, (str, datetime)):
        return to_local_date(value)
    return value


class LocalDateModel(PeriBase):
    """Mixin that normalises every ``date`` field through ``coerce_local_date``."""

    @field_validator("*", mode="before")
    @classmethod
    def _normalise_dates(cls, value: Any, info: Any) -> Any:
        field = cls.model_fields.get(info.field_name)
        if field is not None and _is_date_annotation(field.annotation):
            return coerce_local_date(value)
        return value


def _is_date_annotation(annotation: Any) -> bool:
    if annotation is date:
        return True
    args = getattr(annotation, "__args__", ())
    return date in args
