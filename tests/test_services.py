"""Tests for REST, storage and compression services."""
import json
import re
from io import BytesIO
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from PIL import Image

from property_uploader.errors import APIError, UploadError
from property_uploader.models import BlogPost, Property
from property_uploader.services import (
    BlogRepository,
    HTTPAPIClient,
    PropertyCatalog,
    PropertyDirectory,
    PropertyNotFoundError,
    StorageService,
    compress_image,
    generate_object_path,
)


def _json_response(payload, status_code=200):
    return Mock(status_code=status_code, json=Mock(return_value=payload))


class TestHTTPAPIClient:
    @pytest.mark.asyncio
    async def test_get_sends_key_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": 1}])

        async with HTTPAPIClient("https://proj.supabase.co/", "anon", transport=httpx.MockTransport(handler)) as client:
            response = await client.get("/rest/v1/properties", params={"select": "id"})

        assert response.json() == [{"id": 1}]
        request = seen[0]
        assert request.url.path == "/rest/v1/properties"
        assert request.url.params["select"] == "id"
        assert request.headers["apikey"] == "anon"
        assert request.headers["authorization"] == "Bearer anon"

    @pytest.mark.asyncio
    async def test_patch_prefers_minimal(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        async with HTTPAPIClient("https://proj.supabase.co", "anon", transport=httpx.MockTransport(handler)) as client:
            await client.patch("/rest/v1/properties", json={"hero_image": "u"}, params={"id": "eq.5"})

        request = seen[0]
        assert request.method == "PATCH"
        assert request.headers["prefer"] == "return=minimal"
        assert request.url.params["id"] == "eq.5"
        assert json.loads(request.content) == {"hero_image": "u"}

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(401, json={"message": "Invalid API key"})

        async with HTTPAPIClient("https://proj.supabase.co", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(APIError) as exc_info:
                await client.get("/rest/v1/properties")

        assert exc_info.value.status_code == 401
        assert "Invalid API key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_requires_context(self):
        with pytest.raises(RuntimeError):
            await HTTPAPIClient("https://proj.supabase.co").get("/rest/v1/properties")


class TestStorageService:
    @pytest.mark.asyncio
    async def test_upload_bytes(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"url": "https://cdn.test/properties/x.jpg"})

        async with StorageService("https://proj.supabase.co/functions/v1/upload", "anon",
                                  transport=httpx.MockTransport(handler)) as storage:
            url = await storage.upload_bytes(b"jpeg", "image/jpeg", "properties/x.jpg")

        assert url == "https://cdn.test/properties/x.jpg"
        request = seen[0]
        assert request.method == "POST"
        assert request.url.params["path"] == "properties/x.jpg"
        assert request.headers["content-type"] == "image/jpeg"
        assert request.headers["authorization"] == "Bearer anon"
        assert request.content == b"jpeg"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response,message", [
        (httpx.Response(500, text="boom"), "Upload failed \\(500\\)"),
        (httpx.Response(200, text="not json"), "Invalid upload response"),
        (httpx.Response(200, json={"path": "x"}), "No URL returned"),
    ])
    async def test_upload_errors(self, response, message):
        async with StorageService("https://upload.test", transport=httpx.MockTransport(lambda r: response)) as storage:
            with pytest.raises(UploadError, match=message):
                await storage.upload_bytes(b"x", "image/jpeg", "properties/x.jpg")


def test_generate_object_path():
    first = generate_object_path("properties", "Hero.JPG")
    second = generate_object_path("properties", "Hero.JPG")

    assert re.fullmatch(r"properties/[0-9a-f]{13}_\d+\.JPG", first)
    assert first != second
    assert generate_object_path("blog", "a.b.png").endswith(".png")


class TestPropertyDirectory:
    @pytest.fixture
    def api(self):
        client = Mock()
        client.get = AsyncMock()
        client.patch = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_list_properties(self, api):
        api.get.return_value = _json_response([{"id": 5, "title": "Riverside Gardens"}, {"id": 6, "title": None}])

        properties = await PropertyDirectory(api).list_properties()

        assert properties == [Property(5, "Riverside Gardens"), Property(6, "")]
        api.get.assert_awaited_once_with(
            "/rest/v1/properties", params={"select": "id,title", "order": "title.asc"}
        )

    @pytest.mark.asyncio
    async def test_get_gallery(self, api):
        api.get.return_value = _json_response([{"gallery_images": None}])
        assert await PropertyDirectory(api).get_gallery(5) == []

        api.get.return_value = _json_response([{"gallery_images": ["a", "b"]}])
        assert await PropertyDirectory(api).get_gallery(5) == ["a", "b"]
        assert api.get.await_args.kwargs["params"]["id"] == "eq.5"

    @pytest.mark.asyncio
    async def test_get_gallery_missing_row(self, api):
        api.get.return_value = _json_response([])
        with pytest.raises(PropertyNotFoundError):
            await PropertyDirectory(api).get_gallery(999)

    @pytest.mark.asyncio
    async def test_update_property(self, api):
        await PropertyDirectory(api).update_property(5, {"gallery_images": ["a"], "hero_image": "h"})

        api.patch.assert_awaited_once_with(
            "/rest/v1/properties",
            json={"gallery_images": ["a"], "hero_image": "h"},
            params={"id": "eq.5"},
        )

    @pytest.mark.asyncio
    async def test_update_rejects_other_fields(self, api):
        with pytest.raises(ValueError):
            await PropertyDirectory(api).update_property(5, {"title": "x"})
        api.patch.assert_not_awaited()


class TestPropertyCatalog:
    @pytest.mark.asyncio
    async def test_loads_once(self, directory):
        catalog = PropertyCatalog(directory)
        assert catalog.is_loaded is False

        await catalog.properties()
        await catalog.properties()

        assert directory.list_calls == 1
        assert catalog.is_loaded is True
        assert catalog.loaded_at is not None
        assert catalog.get(5).title == "Riverside Gardens"
        with pytest.raises(KeyError):
            catalog.get(999)

    @pytest.mark.asyncio
    async def test_failure_not_cached(self):
        source = Mock()
        source.list_properties = AsyncMock(side_effect=[RuntimeError("offline"), [Property(1, "A")]])
        catalog = PropertyCatalog(source)

        assert await catalog.properties() == []
        assert catalog.is_loaded is False
        assert await catalog.properties() == [Property(1, "A")]

    @pytest.mark.asyncio
    async def test_refresh_sees_new_rows(self, directory):
        catalog = PropertyCatalog(directory)
        await catalog.properties()
        directory.rows[9] = {"id": 9, "title": "Elm Cottage", "gallery_images": []}

        assert len(await catalog.properties()) == 3
        assert len(await catalog.refresh()) == 4


class TestBlogRepository:
    @pytest.mark.asyncio
    async def test_list_posts(self):
        api = Mock()
        api.get = AsyncMock(return_value=_json_response([{"id": 3, "title": "Spring market"}]))

        posts = await BlogRepository(api, limit=10).list_posts()

        assert posts == [BlogPost(3, "Spring market")]
        params = api.get.await_args.kwargs["params"]
        assert params["order"] == "published_at.desc.nullslast"
        assert params["limit"] == "10"

    @pytest.mark.asyncio
    async def test_update_post_stamps_updated_at(self):
        api = Mock()
        api.patch = AsyncMock()

        await BlogRepository(api).update_post(3, {"featured_image": "u"})

        kwargs = api.patch.await_args.kwargs
        assert kwargs["params"] == {"id": "eq.3"}
        assert kwargs["json"]["featured_image"] == "u"
        assert "updated_at" in kwargs["json"]


def _png_bytes(size, mode="RGBA"):
    out = BytesIO()
    Image.new(mode, size, (200, 10, 10, 255) if mode == "RGBA" else (200, 10, 10)).save(out, format="PNG")
    return out.getvalue()


class TestCompressImage:
    def test_downscales_and_converts(self):
        data, name = compress_image(_png_bytes((400, 200)), "cover.png", max_size=100)

        assert name == "cover.jpg"
        with Image.open(BytesIO(data)) as img:
            assert img.format == "JPEG"
            assert img.size == (100, 50)
            assert img.mode == "RGB"

    def test_small_image_keeps_size(self):
        data, _ = compress_image(_png_bytes((40, 30), mode="RGB"), "small.png", max_size=100)
        with Image.open(BytesIO(data)) as img:
            assert img.size == (40, 30)

    def test_invalid_data(self):
        with pytest.raises(OSError):
            compress_image(b"not an image", "broken.jpg")
