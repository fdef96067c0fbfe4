"""Shorten endpoint behavior tests."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.registry import LinkRegistry

from conftest import TEST_BASE_URL


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://www.google.com"})
    assert response.status_code == 201
    data = response.json()
    assert data["originalUrl"] == "https://www.google.com"
    assert len(data["slug"]) == 6
    assert data["accessCount"] == 0
    assert data["shortUrl"] == f"{TEST_BASE_URL}/{data['slug']}"
    assert "id" in data
    assert "createdAt" in data
    assert "isCustomAlias" not in data


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["not-a-url", "", "ftp://example.com/file", "https://" + "a" * 2050 + ".com"])
async def test_shorten_invalid_url(client: AsyncClient, url: str) -> None:
    response = await client.post("/shorten", json={"url": url})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_with_custom_alias(client: AsyncClient, auth_headers) -> None:
    response = await client.post(
        "/shorten",
        json={"url": "https://www.github.com", "customAlias": "MyCode"},
        headers=auth_headers("U1"),
    )
    assert response.status_code == 201
    assert response.json()["slug"] == "mycode"
    assert response.json()["shortUrl"] == f"{TEST_BASE_URL}/mycode"


@pytest.mark.asyncio
async def test_shorten_custom_alias_requires_token(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://www.github.com", "customAlias": "mycode"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "unauthenticated"


@pytest.mark.asyncio
async def test_shorten_custom_alias_with_invalid_token(client: AsyncClient) -> None:
    response = await client.post(
        "/shorten",
        json={"url": "https://www.github.com", "customAlias": "mycode"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_shorten_invalid_token_still_allows_anonymous(client: AsyncClient) -> None:
    response = await client.post(
        "/shorten",
        json={"url": "https://www.github.com"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize("alias", ["api", "Docs", "shorten", "my-urls", "AUTH"])
async def test_shorten_reserved_alias(client: AsyncClient, auth_headers, alias: str) -> None:
    response = await client.post(
        "/shorten",
        json={"url": "https://www.github.com", "customAlias": alias},
        headers=auth_headers("U1"),
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "reserved"


@pytest.mark.asyncio
async def test_shorten_duplicate_custom_alias(client: AsyncClient, auth_headers) -> None:
    await client.post(
        "/shorten",
        json={"url": "https://www.github.com", "customAlias": "taken1"},
        headers=auth_headers("U1"),
    )
    response = await client.post(
        "/shorten",
        json={"url": "https://www.example.com", "customAlias": "Taken1"},
        headers=auth_headers("U2"),
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "already_in_use"


@pytest.mark.asyncio
@pytest.mark.parametrize("alias", ["ab", "a" * 31, "my code", "my-code!", "ünï"])
async def test_shorten_custom_alias_format(client: AsyncClient, auth_headers, alias: str) -> None:
    response = await client.post(
        "/shorten",
        json={"url": "https://www.github.com", "customAlias": alias},
        headers=auth_headers("U1"),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    urls = [
        "https://www.google.com",
        "https://www.github.com",
        "https://www.python.org",
    ]
    slugs = set()
    for url in urls:
        response = await client.post("/shorten", json={"url": url})
        assert response.status_code == 201
        slugs.add(response.json()["slug"])
    assert len(slugs) == len(urls)


@pytest.mark.asyncio
async def test_shorten_same_url_twice_gives_distinct_links(client: AsyncClient) -> None:
    first = await client.post("/shorten", json={"url": "https://www.python.org"})
    second = await client.post("/shorten", json={"url": "https://www.python.org"})
    assert first.json()["id"] != second.json()["id"]
    assert first.json()["slug"] != second.json()["slug"]


@pytest.mark.asyncio
async def test_shorten_writes_to_app_database(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post("/shorten", json={"url": "https://www.python.org"})

    stored = await LinkRegistry(db_session).find_by_slug(response.json()["slug"])
    assert stored is not None
    assert stored.original_url == "https://www.python.org"
