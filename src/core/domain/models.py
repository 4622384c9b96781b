"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation and self-documenting fields (Field) without coupling the
  core to I/O libraries.
- The wire uses camelCase (`pageSize`, `singularName`); aliases keep the Python
  side snake_case while accepting the server's payloads as they are.

Note:
- Normalised entities stay plain `dict`s: their fields are whatever the CMS
  content type defines, so only the envelopes around them are modelled here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError
from pydantic.config import ConfigDict


class ContentType(BaseModel):
    """A resource kind known to the client (e.g. `api::page.page` at `/pages`)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Fully-qualified identifier, e.g. 'api::page.page'.",
    )
    singular_name: str = Field(
        ...,
        min_length=1,
        alias="singularName",
        description="Short singular name used to look the content type up.",
    )
    path: str = Field(
        ...,
        min_length=1,
        description="Collection path (usually the plural name), without slashes.",
    )


class PageInfo(BaseModel):
    """Page-based pagination metadata (`page` / `pageSize`)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    page: int
    page_size: int = Field(..., alias="pageSize")
    page_count: int | None = Field(default=None, alias="pageCount")
    total: int | None = None


class OffsetInfo(BaseModel):
    """Offset-based pagination metadata (`start` / `limit`)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    start: int
    limit: int
    total: int | None = None


Pagination = Union[PageInfo, OffsetInfo, Mapping[str, Any]]


def parse_pagination(raw: object) -> Pagination | None:
    """Discriminate page vs offset metadata by the keys present.

    Values are copied verbatim; nothing is checked against the number of items
    actually returned. Metadata matching neither shape, or whose values do not
    fit it (e.g. `pageSize: null`), is kept as the raw mapping.
    """

    if not isinstance(raw, Mapping):
        return None
    model: type[PageInfo] | type[OffsetInfo] | None = None
    if "page" in raw and "pageSize" in raw:
        model = PageInfo
    elif "start" in raw and "limit" in raw:
        model = OffsetInfo
    if model is not None:
        try:
            return model.model_validate(dict(raw))
        except ValidationError:
            return dict(raw)
    return dict(raw)


def pagination_total(pagination: Pagination | None) -> int | None:
    """`total` reported by either metadata shape, or None when unavailable."""

    if pagination is None:
        return None
    if isinstance(pagination, Mapping):
        total = pagination.get("total")
    else:
        total = pagination.total
    return total if isinstance(total, int) and not isinstance(total, bool) else None


class NormalisedCollection(list):
    """A list of normalised entities carrying the response's pagination metadata.

    The metadata is a single attachment on the sequence, not a field on each
    element.
    """

    def __init__(
        self,
        items: Iterable[dict[str, Any]] = (),
        pagination: Pagination | None = None,
    ) -> None:
        super().__init__(items)
        self.pagination = pagination

    def __repr__(self) -> str:
        return f"NormalisedCollection({list.__repr__(self)}, pagination={self.pagination!r})"


class AuthenticationResponse(BaseModel):
    """Body returned by the users & permissions login endpoint."""

    model_config = ConfigDict(extra="ignore")

    jwt: str = Field(..., min_length=1)
    user: dict[str, Any] = Field(default_factory=dict)
