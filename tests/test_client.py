from __future__ import annotations

import asyncio
import json
from datetime import datetime

import httpx
import pytest

from core.domain.models import OffsetInfo
from core.errors import ApiError, NotFoundConfigError, TransportError, TraversalTimeoutError


def _json(request: httpx.Request):
    return json.loads(request.content) if request.content else None


def _offset_pages(items: list[dict], total: int | None):
    """Handler serving `items` by `pagination[start]` / `pagination[limit]`."""

    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        start = int(request.url.params["pagination[start]"])
        limit = int(request.url.params["pagination[limit]"])
        pagination = {"start": start, "limit": limit}
        if total is not None:
            pagination["total"] = total
        return httpx.Response(
            200, json={"data": items[start : start + limit], "meta": {"pagination": pagination}}
        )

    return handler, seen


def test_fetch_many_normalises_and_keeps_pagination(make_client, pages_response):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/pages"
        return httpx.Response(200, json=pages_response)

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_many("page")

    pages = asyncio.run(scenario())

    assert [p["title"] for p in pages] == ["Root", "Node", "Leaf"]
    assert pages.pagination.total == 3
    assert isinstance(pages[0]["createdAt"], datetime)


def test_fetch_by_id_sends_query_params(make_client, pages_response):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"data": pages_response["data"][0], "meta": {}})

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_by_id("page", 1, {"populate": ["child_pages"]})

    root = asyncio.run(scenario())

    assert root["id"] == 1
    assert requests[0].url.path == "/api/pages/1"
    assert requests[0].url.params["populate[0]"] == "child_pages"


def test_fetch_first_requests_a_single_item(make_client, pages_response):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "data": pages_response["data"][:1],
                "meta": {"pagination": {"page": 1, "pageSize": 1, "pageCount": 3, "total": 3}},
            },
        )

    params = {"filters": {"$or": [{"title": {"$eq": "Root"}}]}, "pagination": {"page": 5}}

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_first("page", params)

    first = asyncio.run(scenario())

    assert first["title"] == "Root"
    query = requests[0].url.params
    assert query["filters[$or][0][title][$eq]"] == "Root"
    assert query["pagination[page]"] == "1"
    assert query["pagination[pageSize]"] == "1"
    # The caller's params are not modified.
    assert params["pagination"] == {"page": 5}


def test_fetch_first_returns_none_when_nothing_matches(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [], "meta": {}})

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_first("page")

    assert asyncio.run(scenario()) is None


def test_page_and_offset_paginated_fetches(make_client):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"data": [{"id": 1}], "meta": {"pagination": {"start": 10, "limit": 5, "total": 11}}},
        )

    async def scenario():
        async with make_client(handler) as client:
            by_page = await client.fetch_many_page_paginated("page", None, 2, 5)
            by_offset = await client.fetch_many_offset_paginated("page", {"sort": "id"}, 10, 5)
            return by_page, by_offset

    _, by_offset = asyncio.run(scenario())

    assert requests[0].url.params["pagination[page]"] == "2"
    assert requests[0].url.params["pagination[pageSize]"] == "5"
    assert requests[1].url.params["sort"] == "id"
    assert requests[1].url.params["pagination[start]"] == "10"
    assert isinstance(by_offset.pagination, OffsetInfo)
    assert by_offset.pagination.total == 11


def test_fetch_single_uses_singular_path(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/homepage"
        return httpx.Response(200, json={"data": {"id": 1, "attributes": {"headline": "Hi"}}})

    async def scenario():
        async with make_client(handler, content_types=["homepage"]) as client:
            return await client.fetch_single("homepage")

    assert asyncio.run(scenario()) == {"id": 1, "headline": "Hi"}


def test_create_update_delete(make_client):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        body = _json(request) or {}
        data = {"id": 4, "attributes": body.get("data", {"title": "gone"})}
        return httpx.Response(200, json={"data": data, "meta": {}})

    async def scenario():
        async with make_client(handler) as client:
            created = await client.create("page", {"data": {"title": "New"}})
            updated = await client.update("page", 4, {"data": {"title": "Renamed"}})
            deleted = await client.delete("page", 4)
            return created, updated, deleted

    created, updated, deleted = asyncio.run(scenario())

    assert [(r.method, r.url.path) for r in requests] == [
        ("POST", "/api/pages"),
        ("PUT", "/api/pages/4"),
        ("DELETE", "/api/pages/4"),
    ]
    assert _json(requests[0]) == {"data": {"title": "New"}}
    assert requests[2].content == b""
    assert created == {"id": 4, "title": "New"}
    assert updated == {"id": 4, "title": "Renamed"}
    assert deleted == {"id": 4, "title": "gone"}


def test_unknown_content_type_fails_before_any_request(make_client):
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"data": []})

    async def scenario():
        async with make_client(handler) as client:
            for operation in (
                client.fetch_many("article"),
                client.fetch_by_id("article", 1),
                client.create("article", {"data": {}}),
                client.fetch_all("article"),
            ):
                with pytest.raises(NotFoundConfigError):
                    await operation

    asyncio.run(scenario())

    assert calls == []


def test_get_endpoint(make_client):
    client = make_client(lambda request: httpx.Response(200))

    assert client.get_endpoint("page", 1) == "http://cms.test/api/pages/1"
    assert client.get_endpoint("page", params={"sort": "title"}) == "http://cms.test/api/pages?sort=title"
    asyncio.run(client.aclose())


def test_login_stores_token_and_sends_bearer(make_client):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/api/auth/local":
            return httpx.Response(200, json={"jwt": "secret-token", "user": {"id": 1, "username": "ada"}})
        return httpx.Response(200, json={"data": [], "meta": {}})

    async def scenario():
        async with make_client(handler) as client:
            token = await client.login("ada@example.com", "pw")
            await client.fetch_many("page")
            return client, token

    client, token = asyncio.run(scenario())

    assert token == "secret-token"
    assert client.jwt == "secret-token"
    assert client.user == {"id": 1, "username": "ada"}
    assert _json(requests[0]) == {"identifier": "ada@example.com", "password": "pw"}
    assert "authorization" not in requests[0].headers
    assert requests[1].headers["authorization"] == "Bearer secret-token"


def test_configured_token_is_sent(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == "Bearer api-token"
        assert request.headers["accept"] == "application/json"
        return httpx.Response(200, json={"data": []})

    async def scenario():
        async with make_client(handler, jwt="api-token") as client:
            return await client.fetch_many("page")

    assert asyncio.run(scenario()) == []


def test_api_error_carries_server_error_body(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404,
            json={
                "data": None,
                "error": {"status": 404, "name": "NotFoundError", "message": "Not Found", "details": {}},
            },
        )

    async def scenario():
        async with make_client(handler) as client:
            await client.fetch_by_id("page", 99)

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(scenario())

    error = excinfo.value
    assert error.to_dict() == {"status": 404, "name": "NotFoundError", "message": "Not Found", "details": {}}
    assert str(error) == "404 NotFoundError: Not Found"


def test_api_error_without_error_body(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    async def scenario():
        async with make_client(handler) as client:
            await client.fetch_many("page")

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.status == 502
    assert excinfo.value.name == "HttpError"


def test_validation_error_details_are_kept(make_client):
    details = {"errors": [{"path": ["title"], "message": "title must be defined."}]}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": {"status": 400, "name": "ValidationError", "message": "Invalid", "details": details}},
        )

    async def scenario():
        async with make_client(handler) as client:
            await client.create("page", {"data": {}})

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.details == details


def test_transport_failure_raises_transport_error(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with make_client(handler) as client:
            await client.fetch_many("page")

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(scenario())

    assert "connection refused" in str(excinfo.value)
    assert excinfo.value.status is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_no_content_response_gives_empty_envelope(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_raw("DELETE", "page", 1)

    assert asyncio.run(scenario()) == {}


def test_fetch_all_collects_every_page(make_client):
    items = [{"id": i, "attributes": {"title": f"p{i}"}} for i in range(1, 6)]
    handler, seen = _offset_pages(items, total=5)

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_all("page", {"sort": "id"}, limit=2)

    result = asyncio.run(scenario())

    assert [item["id"] for item in result] == [1, 2, 3, 4, 5]
    assert [r.url.params["pagination[start]"] for r in seen] == ["0", "2", "4"]
    assert all(r.url.params["sort"] == "id" for r in seen)


def test_fetch_all_with_exact_multiple_of_limit(make_client):
    items = [{"id": i} for i in range(1, 5)]
    handler, seen = _offset_pages(items, total=4)

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_all("page", limit=2)

    assert len(asyncio.run(scenario())) == 4
    assert len(seen) == 2


def test_fetch_all_times_out_between_pages(make_client):
    items = [{"id": i} for i in range(1, 4)]
    serve, _ = _offset_pages(items, total=3)

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.05)
        return serve(request)

    async def scenario():
        async with make_client(handler) as client:
            await client.fetch_all("page", limit=1, timeout_ms=75)

    with pytest.raises(TraversalTimeoutError) as excinfo:
        asyncio.run(scenario())

    assert isinstance(excinfo.value, TimeoutError)
    assert excinfo.value.timeout_ms == 75
    assert 1 <= excinfo.value.collected < 3


def test_login_without_jwt_raises_api_error(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"user": {"id": 1}})

    async def scenario():
        async with make_client(handler) as client:
            await client.login("ada", "pw")

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.name == "InvalidResponseError"


def test_fetch_many_with_malformed_pagination_still_returns_items(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"data": [{"id": 1}], "meta": {"pagination": {"page": 1, "pageSize": None, "total": 1}}},
        )

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_many("page")

    pages = asyncio.run(scenario())

    assert pages == [{"id": 1}]
    assert pages.pagination == {"page": 1, "pageSize": None, "total": 1}


@pytest.mark.parametrize("status", ["teapot", None, ""])
def test_unusable_error_status_falls_back_to_http_status(status):
    error = ApiError.from_body(418, "I'm a teapot", {"error": {"status": status, "name": "TeaError"}})

    assert error.status == 418
    assert error.name == "TeaError"
    assert error.message == "I'm a teapot"
