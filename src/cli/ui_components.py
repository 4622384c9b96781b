"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from presentation details.
- Tables/panels are reused by several commands.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import NormalisedCollection, OffsetInfo, PageInfo
from core.errors import ApiError, CmsClientError

_MAX_CELL = 60


def print_banner(console: Console, url: str) -> None:
    """Welcome banner; suppressed in non-interactive (JSON) modes."""

    title = Text("cms-client", style="bold cyan")
    subtitle = Text(url, style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        # Normalised relation.
        return f"#{value.get('id')}" if "id" in value else "{…}"
    if isinstance(value, list):
        return ", ".join(_cell(v) for v in value)
    text = str(value)
    return text if len(text) <= _MAX_CELL else text[: _MAX_CELL - 1] + "…"


def build_entities_table(entities: Sequence[Mapping[str, Any]], title: str) -> Table:
    """One row per entity, `id` first, then every key seen (in order of appearance)."""

    columns: list[str] = ["id"]
    for entity in entities:
        for key in entity:
            if key not in columns and key != "meta":
                columns.append(key)

    table = Table(title=title)
    for column in columns:
        table.add_column(column, style="cyan" if column == "id" else "white", no_wrap=column == "id")
    for entity in entities:
        table.add_row(*(_cell(entity.get(column)) for column in columns))
    return table


def describe_pagination(result: NormalisedCollection) -> str | None:
    pagination = result.pagination
    if isinstance(pagination, PageInfo):
        return (
            f"page {pagination.page}/{pagination.page_count if pagination.page_count is not None else '?'}"
            f" · page size {pagination.page_size} · total {pagination.total if pagination.total is not None else '?'}"
        )
    if isinstance(pagination, OffsetInfo):
        return (
            f"start {pagination.start} · limit {pagination.limit}"
            f" · total {pagination.total if pagination.total is not None else '?'}"
        )
    return None


def build_error_panel(error: CmsClientError) -> Panel:
    body = Text(str(error))
    if isinstance(error, ApiError) and error.details:
        body.append(f"\n\n{error.details}", style="dim")
    return Panel(body, title=Text(type(error).__name__, style="bold red"), border_style="red")
