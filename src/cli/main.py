"""Command line interface (Typer + Rich).

Thin layer over `adapters.cms_client.CmsClient`: parses options, runs the
async operation and renders the result as a table or JSON.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from adapters.cms_client import CmsClient
from adapters.json_exporter import dumps, export_json
from cli import doctor
from cli.ui_components import (
    build_entities_table,
    build_error_panel,
    describe_pagination,
    print_banner,
)
from core.config import ClientSettings, write_user_env_vars
from core.domain.models import NormalisedCollection
from core.domain.publication import PublicationState
from core.endpoints import ContentTypeRegistry, EndpointResolver
from core.errors import CmsClientError
from core.query import QueryParams

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Query a headless CMS REST API.")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _parse_query(query: str | None, preview: bool = False) -> dict[str, Any] | None:
    data: Any = {}
    if query:
        try:
            data = json.loads(query)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"--query is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise typer.BadParameter("--query must be a JSON object")
    if preview:
        data["publicationState"] = PublicationState.from_bool(preview)
    try:
        QueryParams.model_validate(data)
    except ValidationError as exc:
        raise typer.BadParameter(f"--query is invalid: {exc}") from exc
    return data or None


def _settings(url: str | None, prefix: str | None, verbose: bool) -> ClientSettings:
    settings = ClientSettings()
    updates: dict[str, Any] = {}
    if url:
        updates["url"] = url
    if prefix is not None:
        updates["prefix"] = prefix
    if updates:
        settings = settings.model_copy(update=updates)
    configure_logging(verbose or settings.debug)
    return settings


def _client(settings: ClientSettings, name: str | None = None) -> CmsClient:
    content_types = list(settings.content_types)
    if name and name not in content_types:
        content_types.append(name)
    return CmsClient(settings, content_types=content_types)


def _run(settings: ClientSettings, name: str, operation: Callable[[CmsClient], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with _client(settings, name) as client:
            return await operation(client)

    try:
        return asyncio.run(runner())
    except CmsClientError as exc:
        _err_console.print(build_error_panel(exc))
        raise typer.Exit(code=1) from exc


def _render(result: Any, *, name: str, as_json: bool, output: Path | None, settings: ClientSettings) -> None:
    if output is not None:
        path = export_json(result=result, output_path=output)
        _console.print(f"[green]Saved JSON to:[/green] {path}")
        return
    if as_json:
        _console.print_json(dumps(result))
        return

    print_banner(_console, settings.url)
    if result is None:
        _console.print("[yellow]No matching entry.[/yellow]")
        return
    entities = result if isinstance(result, list) else [result]
    _console.print(build_entities_table(entities, title=f"{name} ({len(entities)})"))
    if isinstance(result, NormalisedCollection):
        summary = describe_pagination(result)
        if summary:
            _console.print(summary, style="dim")


UrlOption = typer.Option(None, "--url", help="CMS base URL (overrides CMS_CLIENT_URL).")
PrefixOption = typer.Option(None, "--prefix", help="API prefix (overrides CMS_CLIENT_PREFIX).")
QueryOption = typer.Option(None, "--query", "-q", help="Query params as a JSON object.")
JsonOption = typer.Option(False, "--json", help="Print JSON instead of a table.")
OutputOption = typer.Option(None, "--output", "-o", help="Write the JSON result to this file.")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Log every request (DEBUG).")
PreviewOption = typer.Option(False, "--preview", help="Include drafts (publicationState=preview).")


@app.command()
def endpoint(
    name: str = typer.Argument(..., help="Singular content type name."),
    id: Optional[str] = typer.Option(None, "--id", help="Entity id."),
    single: bool = typer.Option(False, "--single", help="Single-type resource."),
    query: Optional[str] = QueryOption,
    url: Optional[str] = UrlOption,
    prefix: Optional[str] = PrefixOption,
) -> None:
    """Print the URL an operation would call (no request is made)."""

    settings = _settings(url, prefix, False)
    content_types = [*settings.content_types, name]
    resolver = EndpointResolver(settings.url, settings.prefix, ContentTypeRegistry(content_types))
    typer.echo(resolver.resolve(name, id, _parse_query(query), single_type=single))


@app.command()
def get(
    name: str = typer.Argument(..., help="Singular content type name."),
    id: Optional[str] = typer.Option(None, "--id", help="Entity id (omit with --single or for the first match)."),
    single: bool = typer.Option(False, "--single", help="Fetch a single-type resource."),
    query: Optional[str] = QueryOption,
    preview: bool = PreviewOption,
    as_json: bool = JsonOption,
    output: Optional[Path] = OutputOption,
    url: Optional[str] = UrlOption,
    prefix: Optional[str] = PrefixOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fetch one entity: by id, the single-type instance, or the first match."""

    settings = _settings(url, prefix, verbose)
    params = _parse_query(query, preview)

    async def operation(client: CmsClient) -> Any:
        if single:
            return await client.fetch_single(name, params)
        if id is not None:
            return await client.fetch_by_id(name, id, params)
        return await client.fetch_first(name, params)

    result = _run(settings, name, operation)
    _render(result, name=name, as_json=as_json, output=output, settings=settings)


@app.command(name="list")
def list_(
    name: str = typer.Argument(..., help="Singular content type name."),
    query: Optional[str] = QueryOption,
    preview: bool = PreviewOption,
    page: Optional[int] = typer.Option(None, "--page", min=1),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
    start: Optional[int] = typer.Option(None, "--start", min=0),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    as_json: bool = JsonOption,
    output: Optional[Path] = OutputOption,
    url: Optional[str] = UrlOption,
    prefix: Optional[str] = PrefixOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fetch one page of entities."""

    if (page is not None or page_size is not None) and (start is not None or limit is not None):
        raise typer.BadParameter("use either --page/--page-size or --start/--limit")

    settings = _settings(url, prefix, verbose)
    params = _parse_query(query, preview)

    async def operation(client: CmsClient) -> NormalisedCollection:
        if page is not None or page_size is not None:
            return await client.fetch_many_page_paginated(name, params, page, page_size)
        if start is not None or limit is not None:
            return await client.fetch_many_offset_paginated(name, params, start, limit)
        return await client.fetch_many(name, params)

    result = _run(settings, name, operation)
    _render(result, name=name, as_json=as_json, output=output, settings=settings)


@app.command(name="all")
def all_(
    name: str = typer.Argument(..., help="Singular content type name."),
    query: Optional[str] = QueryOption,
    preview: bool = PreviewOption,
    limit: int = typer.Option(50, "--limit", min=1, help="Items per page request."),
    timeout_ms: Optional[float] = typer.Option(None, "--timeout-ms", min=1, help="Give up after this many ms."),
    as_json: bool = JsonOption,
    output: Optional[Path] = OutputOption,
    url: Optional[str] = UrlOption,
    prefix: Optional[str] = PrefixOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fetch every entity, paging until the reported total is reached."""

    settings = _settings(url, prefix, verbose)
    params = _parse_query(query, preview)

    async def operation(client: CmsClient) -> list[dict[str, Any]]:
        return await client.fetch_all(name, params, limit, timeout_ms)

    result = _run(settings, name, operation)
    _render(result, name=name, as_json=as_json, output=output, settings=settings)


@app.command()
def login(
    identifier: str = typer.Argument(..., help="Username or email."),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    save: bool = typer.Option(False, "--save", help="Store the JWT in the user config .env."),
    url: Optional[str] = UrlOption,
    prefix: Optional[str] = PrefixOption,
    verbose: bool = VerboseOption,
) -> None:
    """Log in with the users & permissions plugin and print the JWT."""

    settings = _settings(url, prefix, verbose)

    async def operation(client: CmsClient) -> str:
        return await client.login(identifier, password)

    token = _run(settings, "", operation)
    if save:
        env_path = write_user_env_vars({"CMS_CLIENT_JWT": token})
        _console.print(f"[green]Saved token to:[/green] {env_path}")
    else:
        typer.echo(token)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
