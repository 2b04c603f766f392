"""
HTTP surface: the full post lifecycle, error kinds, and image endpoints.

Each test creates the posts it needs through the API, so test order does
not matter.
"""
import uuid

import pytest
from httpx import AsyncClient

from app.storage import storage


async def _create(client: AsyncClient, title: str = "Hello", content: str = "Body", **fields) -> dict:
    resp = await client.post("/api/v1/posts", data={"title": title, "content": content, **fields})
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Infrastructure / health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.json()["cache"] == "disabled"


@pytest.mark.asyncio
async def test_error_body_is_documented(async_client: AsyncClient):
    schema = (await async_client.get("/openapi.json")).json()
    assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {"detail", "kind"}


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_post_lifecycle_over_http(async_client: AsyncClient):
    a = await _create(async_client, "A", "content")
    assert a["slug"] == "a"

    listed = (await async_client.get("/api/v1/posts")).json()
    assert [c["id"] for c in listed] == [a["id"]]

    resp = await async_client.patch(f"/api/v1/posts/{a['id']}", json={"title": "B"})
    assert resp.status_code == 200
    assert resp.json()["title"] == "B"

    fetched = (await async_client.get(f"/api/v1/posts/{a['id']}")).json()
    assert fetched["title"] == "B"
    listed = (await async_client.get("/api/v1/posts")).json()
    assert listed[0]["display_title"] == "B"

    resp = await async_client.delete(f"/api/v1/posts/{a['id']}")
    assert resp.status_code == 204

    assert (await async_client.get("/api/v1/posts")).json() == []
    resp = await async_client.get(f"/api/v1/posts/{a['id']}")
    assert resp.status_code == 404
    assert resp.json()["kind"] == "not_found"


@pytest.mark.asyncio
async def test_get_post_by_slug(async_client: AsyncClient):
    created = await _create(async_client, "My First Post")
    resp = await async_client.get("/api/v1/posts/my-first-post")
    assert resp.status_code == 200
    assert resp.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_same_title_posts_resolve_by_their_own_slug(async_client: AsyncClient):
    first = await _create(async_client, "Hello", "one")
    second = await _create(async_client, "Hello", "two")
    assert first["slug"] != second["slug"]

    for post in (first, second):
        resp = await async_client.get(f"/api/v1/posts/{post['slug']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == post["id"]


@pytest.mark.asyncio
async def test_create_with_metadata(async_client: AsyncClient):
    created = await _create(
        async_client,
        excerpt="Short",
        description="Long",
        category="news",
        author_name="Ada",
    )
    assert created["excerpt"] == "Short"
    assert created["category"] == "news"
    assert created["author_name"] == "Ada"


@pytest.mark.asyncio
async def test_recent_and_management_views(async_client: AsyncClient):
    for i in range(4):
        await _create(async_client, f"Post {i}")

    recent = (await async_client.get("/api/v1/posts/recent")).json()
    assert recent["total"] == 4
    assert recent["pages"] == 2
    assert [c["display_title"] for c in recent["items"]] == ["Post 3", "Post 2", "Post 1"]

    page_two = (await async_client.get("/api/v1/posts/recent", params={"page": 2})).json()
    assert [c["display_title"] for c in page_two["items"]] == ["Post 0"]

    manage = (await async_client.get("/api/v1/posts/manage")).json()
    assert [p["title"] for p in manage] == ["Post 3", "Post 2", "Post 1", "Post 0"]


# ---------------------------------------------------------------------------
# Validation and errors
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_requires_title_and_content(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/posts", data={"title": "Only title"})
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation"
    assert (await async_client.get("/api/v1/posts")).json() == []


@pytest.mark.asyncio
async def test_update_rejects_read_only_fields(async_client: AsyncClient):
    created = await _create(async_client)
    resp = await async_client.patch(f"/api/v1/posts/{created['id']}", json={"slug": "new"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_null_clears_image(async_client: AsyncClient):
    created = await _create(async_client, image_cover="https://elsewhere.example.com/a.png")
    resp = await async_client.patch(
        f"/api/v1/posts/{created['id']}", json={"image_cover": None}
    )
    assert resp.status_code == 200
    assert resp.json()["image_cover"] is None
    assert resp.json()["title"] == "Hello"


@pytest.mark.asyncio
async def test_update_missing_post(async_client: AsyncClient):
    missing = uuid.uuid4()
    resp = await async_client.patch(f"/api/v1/posts/{missing}", json={"title": "X"})
    assert resp.status_code == 404
    assert resp.json() == {"detail": f"Post {missing} not found", "kind": "not_found"}


@pytest.mark.asyncio
async def test_delete_missing_post_is_an_error(async_client: AsyncClient):
    resp = await async_client.delete(f"/api/v1/posts/{uuid.uuid4()}")
    assert resp.status_code == 503
    assert resp.json()["kind"] == "retry"


@pytest.mark.asyncio
async def test_identifier_shaped_unknown_key(async_client: AsyncClient):
    resp = await async_client.get(f"/api/v1/posts/{uuid.uuid4()}")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_with_uploaded_image(async_client: AsyncClient, fake_s3):
    resp = await async_client.post(
        "/api/v1/posts",
        data={"title": "Pic", "content": "Body"},
        files={"image": ("cover.png", b"png-bytes", "image/png")},
    )
    assert resp.status_code == 201
    [key] = fake_s3.keys()
    assert resp.json()["image_cover"] == storage.public_address(key)


@pytest.mark.asyncio
async def test_create_with_failed_upload_writes_nothing(async_client: AsyncClient, fake_s3):
    fake_s3.fail_puts = True
    resp = await async_client.post(
        "/api/v1/posts",
        data={"title": "Pic", "content": "Body"},
        files={"image": ("cover.png", b"png-bytes", "image/png")},
    )
    assert resp.status_code == 502
    assert resp.json()["kind"] == "retry"
    assert (await async_client.get("/api/v1/posts")).json() == []


@pytest.mark.asyncio
async def test_replace_and_clear_cover(async_client: AsyncClient, fake_s3):
    created = await _create(async_client)

    resp = await async_client.put(
        f"/api/v1/posts/{created['id']}/image",
        files={"image": ("new.jpg", b"jpg-bytes", "image/jpeg")},
    )
    assert resp.status_code == 200
    assert resp.json()["image_cover"].endswith(".jpg")
    assert len(fake_s3.keys()) == 1

    resp = await async_client.delete(f"/api/v1/posts/{created['id']}/image")
    assert resp.status_code == 200
    assert resp.json()["image_cover"] is None
    assert fake_s3.keys() == set()


@pytest.mark.asyncio
async def test_delete_post_survives_image_removal_failure(async_client: AsyncClient, fake_s3):
    resp = await async_client.post(
        "/api/v1/posts",
        data={"title": "Pic", "content": "Body"},
        files={"image": ("cover.png", b"png-bytes", "image/png")},
    )
    post_id = resp.json()["id"]
    fake_s3.fail_deletes = True

    resp = await async_client.delete(f"/api/v1/posts/{post_id}")
    assert resp.status_code == 204
    assert (await async_client.get(f"/api/v1/posts/{post_id}")).status_code == 404


@pytest.mark.asyncio
async def test_image_endpoints(async_client: AsyncClient, fake_s3):
    resp = await async_client.post(
        "/api/v1/images", files={"image": ("a.webp", b"webp", "image/webp")}
    )
    assert resp.status_code == 201
    url = resp.json()["url"]

    resp = await async_client.delete("/api/v1/images", params={"url": url})
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    assert fake_s3.keys() == set()

    # Already gone: still a clean, advisory response.
    resp = await async_client.delete("/api/v1/images", params={"url": url})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_upload_rejects_non_image(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/images", files={"image": ("notes.txt", b"hello", "text/plain")}
    )
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation"
