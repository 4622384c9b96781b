"""Response normalisation.

Turns the API's wrapped envelope into flat entities:

    {"data": {"id": 1, "attributes": {"title": "Root",
                                      "parent": {"data": None}}}}
    -> {"id": 1, "title": "Root", "parent": None}

Two item shapes are accepted: the legacy `{id, attributes, meta?}` form and the
newer flat form where fields sit next to `id`. Relation fields arrive wrapped as
`{"data": ...}` and are normalised recursively.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from datetime import datetime
from typing import Any

from core.domain.models import NormalisedCollection, parse_pagination
from core.errors import NormalisationError

# Property names ending in 'at', 'on' or 'date', case insensitive.
DATE_PROPERTY_PATTERN = re.compile(r"^.+(at|on|date)$", re.IGNORECASE)

ISO_DATE_PATTERN = re.compile(
    r"(?P<date>\d{4}-[01]\d-[0-3]\d)T"
    r"(?P<hm>[0-2]\d:[0-5]\d)"
    r"(?::(?P<sec>[0-5]\d)(?:\.(?P<frac>\d+))?)?"
    r"(?P<tz>Z|[+-][0-2]\d:[0-5]\d)"
)

MAX_DEPTH = 32


def parse_iso_datetime(value: str) -> datetime | None:
    """Parse `value` when it fully matches ISO_DATE_PATTERN, else None.

    Fractions are cut to microseconds, a missing seconds field reads as `:00`,
    `Z` becomes UTC.
    """

    match = ISO_DATE_PATTERN.fullmatch(value)
    if match is None:
        return None
    seconds = match.group("sec") or "00"
    frac = (match.group("frac") or "")[:6].ljust(6, "0")
    tz = "+00:00" if match.group("tz") == "Z" else match.group("tz")
    try:
        return datetime.fromisoformat(f"{match.group('date')}T{match.group('hm')}:{seconds}.{frac}{tz}")
    except ValueError:
        # Shape matched but the calendar did not (e.g. 2023-02-31).
        return None


def _describe(item: object) -> str:
    text = repr(item)
    return text if len(text) <= 200 else text[:199] + "…"


def _fields_of(item: Mapping[str, Any]) -> Iterator[tuple[str, Any]]:
    """The single dispatch point between the wrapped and the flat item shapes."""

    if "attributes" in item:
        attributes = item["attributes"]
        if attributes is None:
            return iter(())
        if not isinstance(attributes, Mapping):
            raise NormalisationError(
                f"Cannot normalise item with non-object attributes: {_describe(item)}",
                item,
            )
        return iter(attributes.items())
    return ((k, v) for k, v in item.items() if k not in ("id", "meta"))


class _Normaliser:
    def __init__(
        self,
        *,
        parse_dates: bool,
        date_property_pattern: re.Pattern[str],
        max_depth: int,
    ) -> None:
        if not isinstance(parse_dates, bool):
            raise TypeError(f"parse_dates must be a bool, got {type(parse_dates).__name__}")
        self.parse_dates = parse_dates
        self.date_property_pattern = date_property_pattern
        self.max_depth = max_depth

    def item(self, item: object, depth: int = 0) -> dict[str, Any]:
        if depth > self.max_depth:
            raise NormalisationError(
                f"Cannot normalise item nested deeper than {self.max_depth} levels",
                item,
            )
        if not isinstance(item, Mapping):
            raise NormalisationError(f"Cannot normalise non-object item: {_describe(item)}", item)
        if "id" not in item:
            raise NormalisationError(f"Cannot normalise item without an id: {_describe(item)}", item)

        result: dict[str, Any] = {"id": item["id"]}
        if "meta" in item:
            result["meta"] = item["meta"]

        for key, value in _fields_of(item):
            if isinstance(value, Mapping) and "data" in value:
                result[key] = self.relation(value["data"], depth + 1)
            elif self.parse_dates and isinstance(value, str) and self.date_property_pattern.search(key):
                parsed = parse_iso_datetime(value)
                result[key] = parsed if parsed is not None else value
            else:
                result[key] = value
        return result

    def relation(self, data: object, depth: int) -> dict[str, Any] | list[dict[str, Any]] | None:
        if data is None:
            return None
        if isinstance(data, list):
            return [self.item(element, depth) for element in data]
        return self.item(data, depth)


def _envelope_data(envelope: object) -> object:
    if not isinstance(envelope, Mapping) or "data" not in envelope:
        raise NormalisationError(f"Response has no `data` member: {_describe(envelope)}", envelope)
    return envelope["data"]


def normalise_item(
    envelope: Mapping[str, Any],
    *,
    parse_dates: bool = True,
    date_property_pattern: re.Pattern[str] = DATE_PROPERTY_PATTERN,
    max_depth: int = MAX_DEPTH,
) -> dict[str, Any]:
    """Normalise an envelope whose `data` is a single item."""

    normaliser = _Normaliser(
        parse_dates=parse_dates,
        date_property_pattern=date_property_pattern,
        max_depth=max_depth,
    )
    return normaliser.item(_envelope_data(envelope))


def normalise_array(
    envelope: Mapping[str, Any],
    *,
    parse_dates: bool = True,
    date_property_pattern: re.Pattern[str] = DATE_PROPERTY_PATTERN,
    max_depth: int = MAX_DEPTH,
) -> NormalisedCollection:
    """Normalise an envelope whose `data` is a list; pagination is attached verbatim."""

    data = _envelope_data(envelope)
    if not isinstance(data, list):
        raise NormalisationError(f"Expected a list of items, got: {_describe(data)}", data)
    normaliser = _Normaliser(
        parse_dates=parse_dates,
        date_property_pattern=date_property_pattern,
        max_depth=max_depth,
    )
    meta = envelope.get("meta")
    pagination = parse_pagination(meta.get("pagination")) if isinstance(meta, Mapping) else None
    return NormalisedCollection((normaliser.item(element) for element in data), pagination)


def normalise(
    envelope: Mapping[str, Any],
    *,
    parse_dates: bool = True,
    date_property_pattern: re.Pattern[str] = DATE_PROPERTY_PATTERN,
    max_depth: int = MAX_DEPTH,
) -> dict[str, Any] | NormalisedCollection:
    """Normalise either envelope shape, dispatching on whether `data` is a list."""

    options = {
        "parse_dates": parse_dates,
        "date_property_pattern": date_property_pattern,
        "max_depth": max_depth,
    }
    if isinstance(_envelope_data(envelope), list):
        return normalise_array(envelope, **options)
    return normalise_item(envelope, **options)
