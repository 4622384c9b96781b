"""Content-type registry and endpoint resolution.

The registry is built once, eagerly, from the client's configuration and never
changes afterwards. Every entity operation goes through `ContentTypeRegistry.get`,
so an unknown name fails before any request is made.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any, Union

from core.domain.models import ContentType
from core.errors import NotFoundConfigError
from core.query import QueryParams, build_query_string

ContentTypeInput = Union[str, ContentType, Mapping[str, Any]]

_FULLY_QUALIFIED = re.compile(r"^.+::.+\..+$")
_VOWELS = frozenset("aeiou")


def is_fully_qualified(name: str) -> bool:
    """`api::page.page` style identifiers."""

    return bool(_FULLY_QUALIFIED.match(name or ""))


def derive_plural(name: str) -> str:
    """Plural path for a short name.

    Deliberately simple; irregular plurals need an explicit ContentType record.
    """

    lower = name.lower()
    if len(name) > 1 and lower.endswith("y") and lower[-2] not in _VOWELS:
        return name[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


def content_type_from_input(value: ContentTypeInput) -> ContentType:
    if isinstance(value, ContentType):
        return value
    if isinstance(value, Mapping):
        return ContentType.model_validate(dict(value))
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid content type: {value!r}")

    name = value.strip()
    if is_fully_qualified(name):
        singular = name.split(".")[-1]
        return ContentType(id=name, singular_name=singular, path=derive_plural(singular))
    return ContentType(id=f"api::{name}.{name}", singular_name=name, path=derive_plural(name))


class ContentTypeRegistry(Mapping[str, ContentType]):
    """Immutable mapping of singular name -> ContentType."""

    def __init__(self, inputs: Iterable[ContentTypeInput] = ()) -> None:
        entries: dict[str, ContentType] = {}
        for value in inputs:
            content_type = content_type_from_input(value)
            entries[content_type.singular_name] = content_type
        self._entries = MappingProxyType(entries)

    def __getitem__(self, name: str) -> ContentType:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_content_type(self, name: str) -> ContentType:
        """Like `self[name]` but raises NotFoundConfigError."""

        try:
            return self._entries[name]
        except KeyError:
            raise NotFoundConfigError(name) from None


def _normalise_prefix(prefix: str | None) -> str:
    prefix = (prefix or "").strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


class EndpointResolver:
    """Maps a content type name (+ optional id and params) to a full URL."""

    def __init__(self, base_url: str, prefix: str | None, registry: ContentTypeRegistry) -> None:
        self.base_url = base_url.rstrip("/")
        self.prefix = _normalise_prefix(prefix)
        self.registry = registry

    def url_for(self, path: str) -> str:
        """URL of a non-entity route, e.g. `/auth/local`."""

        return f"{self.base_url}{self.prefix}/{path.lstrip('/')}"

    def resolve(
        self,
        name: str,
        id: int | str | None = None,
        params: QueryParams | Mapping[str, Any] | None = None,
        *,
        single_type: bool = False,
    ) -> str:
        content_type = self.registry.get_content_type(name)
        path = content_type.singular_name if single_type else content_type.path
        if id is not None:
            path = f"{path}/{id}"
        return self.url_for(path) + build_query_string(params)
