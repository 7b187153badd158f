"""Shared building blocks for wire schemas."""
from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for payloads exchanged with the REST service (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def id_field(**kwargs: Any) -> Any:
    """Identifier field accepting both ``_id`` and ``id`` keys."""

    return Field(validation_alias=AliasChoices("_id", "id"), serialization_alias="_id", **kwargs)


def ref_id(value: Any) -> str | None:
    """Return the identifier of a reference that may be a plain id or an embedded object."""

    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        raw = value.get("_id") or value.get("id")
        return str(raw) if raw else None
    return getattr(value, "id", None)


class Pagination(ApiModel):
    total: int = 0
    page: int = 1
    limit: int = 10
    pages: int = 0

    @property
    def has_more(self) -> bool:
        return self.page < self.pages


__all__ = ["ApiModel", "Pagination", "id_field", "ref_id"]
