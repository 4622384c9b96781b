"""httpx wrapper and request executor.

Why a wrapper:
- Standardises timeouts, headers and auth for every call to the CMS.
- Eases testing: the httpx client (or only its transport) can be swapped for a
  mocked one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Literal

import httpx

from adapters.rate_limit import RequestThrottle
from core.config import ClientSettings
from core.endpoints import EndpointResolver
from core.errors import ApiError, TransportError
from core.query import QueryParams

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]

_WRITE_METHODS = frozenset({"POST", "PUT"})


def build_async_client(
    settings: ClientSettings | None = None,
    **client_options: Any,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with the client's defaults.

    Why a builder:
    - Centralises timeouts/headers so every request behaves the same.
    - Any other httpx option (transport, proxy, verify, limits, a different
      timeout) is passed through untouched.
    """

    settings = settings or ClientSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    client_options.setdefault("timeout", httpx.Timeout(settings.http_timeout_seconds))
    return httpx.AsyncClient(headers=headers, **client_options)


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class RequestExecutor:
    """Issues one HTTP call per entity operation and returns the raw envelope.

    No normalisation happens here.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        resolver: EndpointResolver,
        *,
        token_provider: Callable[[], str | None] = lambda: None,
        throttle: RequestThrottle | None = None,
    ) -> None:
        self._http = http
        self._resolver = resolver
        self._token_provider = token_provider
        self._throttle = throttle

    def _headers(self) -> dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def execute(
        self,
        method: HttpMethod,
        name: str,
        id: int | str | None = None,
        body: Any = None,
        params: QueryParams | Mapping[str, Any] | None = None,
        *,
        single_type: bool = False,
    ) -> dict[str, Any]:
        """Perform the call for `name` and return the JSON body unchanged.

        Raises:
            NotFoundConfigError: `name` is not a registered content type (no request made).
            TransportError: no response was received.
            ApiError: the server answered with a non-success status.
        """

        url = self._resolver.resolve(name, id, params, single_type=single_type)
        return await self.send(method, url, body)

    async def send(self, method: HttpMethod, url: str, body: Any = None) -> dict[str, Any]:
        method = method.upper()  # type: ignore[assignment]
        if self._throttle is not None:
            await self._throttle.wait()

        request_kwargs: dict[str, Any] = {"headers": self._headers()}
        if method in _WRITE_METHODS and body is not None:
            request_kwargs["json"] = body

        logger.debug("%s %s", method, url)
        try:
            response = await self._http.request(method, url, **request_kwargs)
        except httpx.TransportError as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)

        if not response.is_success:
            raise ApiError.from_body(
                response.status_code,
                response.reason_phrase,
                _decode_json(response),
            )

        if response.status_code == 204 or not response.content:
            return {}
        payload = _decode_json(response)
        if payload is None:
            raise ApiError(
                status=response.status_code,
                name="InvalidResponseError",
                message=f"Response from {url} is not valid JSON",
            )
        return payload
