"""Redirect endpoint behavior tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_redirect_valid_slug(client: AsyncClient) -> None:
    create_resp = await client.post("/shorten", json={"url": "https://www.google.com"})
    slug = create_resp.json()["slug"]

    response = await client.get(f"/{slug}", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://www.google.com"


@pytest.mark.asyncio
async def test_redirect_unknown_slug(client: AsyncClient) -> None:
    response = await client.get("/nonexistent", follow_redirects=False)
    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"


@pytest.mark.asyncio
async def test_redirect_is_case_sensitive(client: AsyncClient, auth_headers) -> None:
    await client.post(
        "/shorten",
        json={"url": "https://www.github.com", "customAlias": "ghub"},
        headers=auth_headers("U1"),
    )

    assert (await client.get("/ghub", follow_redirects=False)).status_code == 302
    assert (await client.get("/GHUB", follow_redirects=False)).status_code == 404


@pytest.mark.asyncio
async def test_redirect_increments_access_count(client: AsyncClient, auth_headers) -> None:
    headers = auth_headers("U1")
    await client.post("/shorten", json={"url": "https://www.python.org", "customAlias": "pyorg"}, headers=headers)

    for _ in range(3):
        await client.get("/pyorg", follow_redirects=False)

    mine = await client.get("/my-urls", headers=headers)
    assert mine.status_code == 200
    assert mine.json()[0]["accessCount"] == 3


@pytest.mark.asyncio
async def test_redirect_after_delete(client: AsyncClient, auth_headers) -> None:
    headers = auth_headers("U1")
    created = await client.post(
        "/shorten", json={"url": "https://www.python.org", "customAlias": "gone"}, headers=headers
    )
    await client.delete(f"/my-urls/{created.json()['id']}", headers=headers)

    response = await client.get("/gone", follow_redirects=False)
    assert response.status_code == 404
