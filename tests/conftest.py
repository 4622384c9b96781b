"""Shared fixtures: a small page tree (Root -> Node -> Leaf) in both wire shapes."""

from __future__ import annotations

import copy
from typing import Any, Callable

import httpx
import pytest

from adapters.cms_client import CmsClient
from core.config import ClientSettings

BASE_URL = "http://cms.test"


def _wrapped_page(
    id: int,
    title: str,
    *,
    parent: dict[str, Any] | None,
    children: list[dict[str, Any]],
) -> dict[str, Any]:
    return {
        "id": id,
        "attributes": {
            "title": title,
            "slug": title.lower(),
            "createdAt": "2023-04-09T11:26:45.039Z",
            "updatedAt": "2023-04-09T11:27:02.101Z",
            "publishedAt": "2023-04-09T11:27:02.097Z",
            "parent_page": {"data": parent},
            "child_pages": {"data": children},
        },
    }


def _ref(id: int, title: str) -> dict[str, Any]:
    return {
        "id": id,
        "attributes": {
            "title": title,
            "createdAt": "2023-04-09T11:26:45.039Z",
        },
    }


ROOT = _wrapped_page(1, "Root", parent=None, children=[_ref(2, "Node")])
NODE = _wrapped_page(2, "Node", parent=_ref(1, "Root"), children=[_ref(3, "Leaf")])
LEAF = _wrapped_page(3, "Leaf", parent=_ref(2, "Node"), children=[])

PAGES_RESPONSE: dict[str, Any] = {
    "data": [ROOT, NODE, LEAF],
    "meta": {"pagination": {"page": 1, "pageSize": 25, "pageCount": 1, "total": 3}},
}


def flatten_item(item: dict[str, Any]) -> dict[str, Any]:
    """Same item in the newer unwrapped shape (fields next to `id`)."""

    flat: dict[str, Any] = {"id": item["id"]}
    for key, value in item["attributes"].items():
        if isinstance(value, dict) and "data" in value:
            data = value["data"]
            if isinstance(data, list):
                value = {"data": [flatten_item(x) for x in data]}
            elif data is not None:
                value = {"data": flatten_item(data)}
        flat[key] = value
    return flat


@pytest.fixture
def pages_response() -> dict[str, Any]:
    return copy.deepcopy(PAGES_RESPONSE)


@pytest.fixture
def flat_pages_response() -> dict[str, Any]:
    response = copy.deepcopy(PAGES_RESPONSE)
    response["data"] = [flatten_item(item) for item in response["data"]]
    return response


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(_env_file=None, url=BASE_URL, prefix="/api", content_types=[])


@pytest.fixture
def make_client(settings: ClientSettings) -> Callable[..., CmsClient]:
    """Build a CmsClient whose requests are answered by `handler`."""

    def factory(handler: Callable[[httpx.Request], Any], **kwargs: Any) -> CmsClient:
        kwargs.setdefault("content_types", ["page"])
        return CmsClient(settings, transport=httpx.MockTransport(handler), **kwargs)

    return factory
