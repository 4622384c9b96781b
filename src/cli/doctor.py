"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import ClientSettings, get_user_env_file
from core.endpoints import ContentTypeRegistry, EndpointResolver

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: ClientSettings, url: str) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc) or exc.__class__.__name__


@app.command()
def run() -> None:
    """Show the resolved configuration and check that the CMS answers."""

    settings = ClientSettings()

    table = Table(title="cms-client Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("User config", "OK" if get_user_env_file().exists() else "OPTIONAL", str(get_user_env_file()))
    table.add_row("Base URL", "OK", settings.url)
    table.add_row("Prefix", "OK", settings.prefix or "(none)")
    if settings.jwt:
        table.add_row("Token", "OK", "Bearer token configured")
    else:
        table.add_row("Token", "OPTIONAL", "No token -> public permissions only")

    try:
        registry = ContentTypeRegistry(settings.content_types)
    except ValueError as exc:
        table.add_row("Content types", "FAIL", str(exc))
        registry = ContentTypeRegistry()
    else:
        if registry:
            listing = ", ".join(f"{ct.singular_name} -> /{ct.path}" for ct in registry.values())
            table.add_row("Content types", "OK", listing)
        else:
            table.add_row("Content types", "OPTIONAL", "None configured (CMS_CLIENT_CONTENT_TYPES)")

    resolver = EndpointResolver(settings.url, settings.prefix, registry)
    # Any answer (even 403/404) proves the API is reachable.
    ok_http, detail_http = asyncio.run(_check_http(settings, resolver.url_for("/")))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        _console.print(
            "\n[yellow]Note:[/yellow] set CMS_CLIENT_URL (or pass --url to the commands) to your CMS instance."
        )
