"""Query-string building with bracketed nested keys.

The REST API reads nested structures from keys such as

    filters[$and][0][title][$eq]=Root&populate[0]=author&pagination[start]=0

Only values are percent-encoded; key text and brackets are emitted verbatim.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Union
from urllib.parse import quote

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from core.domain.publication import PublicationState


class PagePagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    page: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1, alias="pageSize")
    with_count: bool | None = Field(default=None, alias="withCount")


class OffsetPagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    start: int | None = Field(default=None, ge=0)
    limit: int | None = Field(default=None)
    with_count: bool | None = Field(default=None, alias="withCount")


class QueryParams(BaseModel):
    """Structured request options.

    Mappings are accepted everywhere this model is, so callers can keep passing
    plain dicts; the model adds validation (e.g. page and offset pagination
    cannot be mixed).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    sort: Union[str, list[str], None] = None
    filters: dict[str, Any] | None = None
    populate: Union[str, list[str], dict[str, Any], None] = None
    fields: list[str] | None = None
    pagination: Union[PagePagination, OffsetPagination, None] = None
    publication_state: PublicationState | None = Field(default=None, alias="publicationState")
    locale: Union[str, list[str], None] = None

    @model_validator(mode="before")
    @classmethod
    def _check_pagination(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        pagination = data.get("pagination")
        if isinstance(pagination, Mapping):
            keys = set(pagination)
            page_keys = keys & {"page", "pageSize", "page_size"}
            offset_keys = keys & {"start", "limit"}
            if page_keys and offset_keys:
                raise ValueError(
                    "pagination cannot mix page-based (page/pageSize) and offset-based (start/limit) keys"
                )
            data = dict(data)
            data["pagination"] = (
                OffsetPagination.model_validate(pagination)
                if offset_keys
                else PagePagination.model_validate(pagination)
            )
        return data

    def to_wire(self) -> dict[str, Any]:
        """Wire (camelCase) representation, unset values dropped."""

        return self.model_dump(by_alias=True, exclude_none=True, mode="python")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _format_value(value.value)
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() == timedelta(0):
            return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _flatten(prefix: str, value: Any) -> Iterator[tuple[str, str]]:
    if value is None:
        return
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        for key, child in value.items():
            yield from _flatten(f"{prefix}[{key}]", child)
    elif isinstance(value, (list, tuple)):
        for index, child in enumerate(value):
            yield from _flatten(f"{prefix}[{index}]", child)
    else:
        yield prefix, _format_value(value)


def iter_query_pairs(params: QueryParams | Mapping[str, Any] | None) -> Iterator[tuple[str, str]]:
    """Yield `(bracketed_key, text_value)` pairs in insertion order."""

    if params is None:
        return
    if isinstance(params, QueryParams):
        params = params.to_wire()
    for key, value in params.items():
        yield from _flatten(str(key), value)


def build_query_string(params: QueryParams | Mapping[str, Any] | None) -> str:
    """Serialise params to `?a=1&b[0]=x`, or `""` when there is nothing to send."""

    fragments = [f"{key}={quote(text, safe='')}" for key, text in iter_query_pairs(params)]
    if not fragments:
        return ""
    return "?" + "&".join(fragments)
