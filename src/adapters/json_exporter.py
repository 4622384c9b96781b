"""JSON export of normalised results.

Why JSON:
- Interoperability with other tools and pipelines (e.g. a search indexer).
- Datetimes produced by the normaliser are rendered back to ISO-8601.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python

from core.domain.models import NormalisedCollection


def to_jsonable(result: Any) -> Any:
    """Plain JSON-compatible data; a collection becomes `{data, pagination}`."""

    if isinstance(result, NormalisedCollection):
        return {
            "data": to_jsonable_python(list(result)),
            "pagination": to_jsonable_python(result.pagination, by_alias=True),
        }
    return to_jsonable_python(result, by_alias=True)


def dumps(result: Any) -> str:
    return json.dumps(to_jsonable(result), ensure_ascii=False, indent=2, sort_keys=True)


def export_json(*, result: Any, output_path: Path) -> Path:
    """Write `result` as UTF-8 JSON with a stable layout."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dumps(result) + "\n", encoding="utf-8")
    return output_path
