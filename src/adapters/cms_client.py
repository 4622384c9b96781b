"""High-level CMS client.

Wires the endpoint resolver, the request executor, the normaliser and the
pagination traversal into the operations callers use:

    async with CmsClient(content_types=["page"]) as client:
        pages = await client.fetch_all("page", {"sort": "title"})

Auth state (`jwt`, `user`) is scoped to the client instance. It is written by
`login` and read by every subsequent request; calling `login` while other
requests of the same client are in flight may let those requests use either
token.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Union

import httpx
from pydantic import ValidationError

from adapters.http_client import HttpMethod, RequestExecutor, build_async_client
from adapters.rate_limit import RequestThrottle
from core.config import ClientSettings
from core.domain.models import AuthenticationResponse, NormalisedCollection
from core.endpoints import ContentTypeInput, ContentTypeRegistry, EndpointResolver
from core.errors import ApiError
from core.normalise import normalise_array, normalise_item
from core.query import QueryParams
from core.services.pagination import DEFAULT_PAGE_LIMIT, traverse_offset_pages

logger = logging.getLogger(__name__)

Params = Union[QueryParams, Mapping[str, Any], None]


def _with_pagination(params: Params, pagination: dict[str, Any]) -> dict[str, Any]:
    """Copy of `params` with its pagination replaced; the caller's object is left alone."""

    if isinstance(params, QueryParams):
        merged = params.to_wire()
    else:
        merged = dict(params or {})
    merged["pagination"] = {k: v for k, v in pagination.items() if v is not None}
    return merged


class CmsClient:
    """Async client for the CMS REST API.

    Explicit constructor arguments win over `settings`; `settings` defaults to
    `ClientSettings()` (environment / .env). Extra keyword arguments are handed
    to `httpx.AsyncClient` untouched (transport, proxy, verify, timeout...).
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        content_types: Iterable[ContentTypeInput] | None = None,
        url: str | None = None,
        prefix: str | None = None,
        jwt: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        parse_dates: bool | None = None,
        max_requests_per_second: float | None = None,
        **client_options: Any,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.url = url if url is not None else self.settings.url
        self.prefix = prefix if prefix is not None else self.settings.prefix
        self.jwt: str | None = jwt if jwt is not None else self.settings.jwt
        self.user: dict[str, Any] | None = None
        self.parse_dates = self.settings.parse_dates if parse_dates is None else parse_dates

        self.registry = ContentTypeRegistry(
            content_types if content_types is not None else self.settings.content_types
        )
        self.resolver = EndpointResolver(self.url, self.prefix, self.registry)

        rate = max_requests_per_second or self.settings.max_requests_per_second
        self._owns_http = http_client is None
        self._http = http_client or build_async_client(self.settings, **client_options)
        self.executor = RequestExecutor(
            self._http,
            self.resolver,
            token_provider=lambda: self.jwt,
            throttle=RequestThrottle(rate) if rate else None,
        )

    async def __aenter__(self) -> "CmsClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the httpx client, unless it was injected by the caller."""

        if self._owns_http:
            await self._http.aclose()

    def get_endpoint(
        self,
        name: str,
        id: int | str | None = None,
        params: Params = None,
        single_type: bool = False,
    ) -> str:
        return self.resolver.resolve(name, id, params, single_type=single_type)

    async def login(self, identifier: str, password: str) -> str:
        """Authenticate with the users & permissions plugin and keep the JWT."""

        payload = await self.executor.send(
            "POST",
            self.resolver.url_for("/auth/local"),
            {"identifier": identifier, "password": password},
        )
        try:
            auth = AuthenticationResponse.model_validate(payload)
        except ValidationError as exc:
            raise ApiError(
                status=200,
                name="InvalidResponseError",
                message="Login response has no usable `jwt`",
            ) from exc
        self.jwt = auth.jwt
        self.user = auth.user
        logger.debug("Logged in as %s", auth.user.get("username", identifier))
        return auth.jwt

    async def fetch_raw(
        self,
        method: HttpMethod,
        name: str,
        id: int | str | None = None,
        data: Any = None,
        params: Params = None,
        single_type: bool = False,
    ) -> dict[str, Any]:
        """The raw, un-normalised envelope."""

        return await self.executor.execute(method, name, id, data, params, single_type=single_type)

    def _item(self, envelope: Mapping[str, Any]) -> dict[str, Any]:
        return normalise_item(envelope, parse_dates=self.parse_dates)

    def _array(self, envelope: Mapping[str, Any]) -> NormalisedCollection:
        return normalise_array(envelope, parse_dates=self.parse_dates)

    async def fetch_single(self, name: str, params: Params = None) -> dict[str, Any]:
        """The only instance of a single-type content type."""

        return self._item(await self.fetch_raw("GET", name, params=params, single_type=True))

    async def fetch_by_id(self, name: str, id: int | str, params: Params = None) -> dict[str, Any]:
        return self._item(await self.fetch_raw("GET", name, id, params=params))

    async def fetch_first(self, name: str, params: Params = None) -> dict[str, Any] | None:
        """First item matching `params` (use `filters`/`sort`), or None."""

        page = await self.fetch_many(name, _with_pagination(params, {"page": 1, "pageSize": 1}))
        return page[0] if page else None

    async def fetch_many(self, name: str, params: Params = None) -> NormalisedCollection:
        return self._array(await self.fetch_raw("GET", name, params=params))

    async def fetch_many_page_paginated(
        self,
        name: str,
        params: Params = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> NormalisedCollection:
        return await self.fetch_many(
            name, _with_pagination(params, {"page": page, "pageSize": page_size})
        )

    async def fetch_many_offset_paginated(
        self,
        name: str,
        params: Params = None,
        start: int | None = None,
        limit: int | None = None,
    ) -> NormalisedCollection:
        return await self.fetch_many(name, _with_pagination(params, {"start": start, "limit": limit}))

    async def fetch_all(
        self,
        name: str,
        params: Params = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        timeout_ms: float | None = None,
    ) -> list[dict[str, Any]]:
        """Every item of `name`, paging by offset until the reported total is reached.

        Raises:
            TraversalTimeoutError: `timeout_ms` elapsed before the last page was requested.
        """

        # Resolve now so an unknown name fails before the traversal starts.
        self.registry.get_content_type(name)

        async def fetch_page(start: int, page_limit: int) -> NormalisedCollection:
            return await self.fetch_many_offset_paginated(name, params, start, page_limit)

        return await traverse_offset_pages(fetch_page, limit, timeout_ms)

    async def create(self, name: str, data: Any, params: Params = None) -> dict[str, Any]:
        return self._item(await self.fetch_raw("POST", name, data=data, params=params))

    async def update(
        self, name: str, id: int | str, data: Any, params: Params = None
    ) -> dict[str, Any]:
        return self._item(await self.fetch_raw("PUT", name, id, data, params))

    async def delete(self, name: str, id: int | str, params: Params = None) -> dict[str, Any]:
        return self._item(await self.fetch_raw("DELETE", name, id, params=params))
