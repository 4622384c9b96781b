from __future__ import annotations

import pytest

from core.domain.models import ContentType
from core.endpoints import (
    ContentTypeRegistry,
    EndpointResolver,
    content_type_from_input,
    derive_plural,
    is_fully_qualified,
)
from core.errors import NotFoundConfigError


@pytest.fixture
def resolver() -> EndpointResolver:
    registry = ContentTypeRegistry(
        [
            "page",
            "api::category.category",
            {"id": "api::person.person", "singularName": "person", "path": "people"},
            "homepage",
        ]
    )
    return EndpointResolver("http://cms.test/", "/api", registry)


@pytest.mark.parametrize(
    ("name", "plural"),
    [
        ("page", "pages"),
        ("category", "categories"),
        ("day", "days"),
        ("address", "addresses"),
        ("box", "boxes"),
        ("branch", "branches"),
    ],
)
def test_derive_plural(name, plural):
    assert derive_plural(name) == plural


def test_is_fully_qualified():
    assert is_fully_qualified("api::page.page")
    assert is_fully_qualified("plugin::users-permissions.user")
    assert not is_fully_qualified("page")


def test_content_type_from_short_and_qualified_names():
    assert content_type_from_input("page") == ContentType(
        id="api::page.page", singular_name="page", path="pages"
    )
    assert content_type_from_input("plugin::users-permissions.user") == ContentType(
        id="plugin::users-permissions.user", singular_name="user", path="users"
    )


@pytest.mark.parametrize("value", ["", "   ", None, 3])
def test_content_type_from_invalid_input(value):
    with pytest.raises(ValueError):
        content_type_from_input(value)


def test_registry_is_read_only(resolver):
    registry = resolver.registry

    assert set(registry) == {"page", "category", "person", "homepage"}
    assert registry["person"].path == "people"
    with pytest.raises(TypeError):
        registry._entries["new"] = registry["page"]


def test_resolve_collection_and_item(resolver):
    assert resolver.resolve("page") == "http://cms.test/api/pages"
    assert resolver.resolve("page", 1) == "http://cms.test/api/pages/1"
    assert resolver.resolve("category", "abc") == "http://cms.test/api/categories/abc"
    assert resolver.resolve("person", 0) == "http://cms.test/api/people/0"


def test_resolve_appends_query_string(resolver):
    url = resolver.resolve("page", None, {"filters": {"title": {"$eq": "Root"}}})

    assert url == "http://cms.test/api/pages?filters[title][$eq]=Root"


def test_resolve_single_type_uses_singular_name(resolver):
    assert resolver.resolve("homepage", single_type=True) == "http://cms.test/api/homepage"


def test_unknown_content_type_raises(resolver):
    with pytest.raises(NotFoundConfigError) as excinfo:
        resolver.resolve("article")

    assert excinfo.value.name == "article"
    assert "article" in str(excinfo.value)


@pytest.mark.parametrize(
    ("prefix", "expected"),
    [
        ("/api", "http://cms.test/api/pages"),
        ("api/", "http://cms.test/api/pages"),
        ("", "http://cms.test/pages"),
        (None, "http://cms.test/pages"),
    ],
)
def test_prefix_normalisation(prefix, expected):
    resolver = EndpointResolver("http://cms.test", prefix, ContentTypeRegistry(["page"]))

    assert resolver.resolve("page") == expected


def test_url_for_non_entity_routes(resolver):
    assert resolver.url_for("/auth/local") == "http://cms.test/api/auth/local"
