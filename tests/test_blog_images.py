"""Tests for blog featured-image pairing."""
from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from property_uploader.models import BlogPost, UploadConfig
from property_uploader.orchestrator import BlogImagePairingOrchestrator, natural_key


def test_natural_key_orders_numbers():
    names = ["img10.jpg", "IMG2.jpg", "img1.jpg", "cover.jpg"]
    ordered = sorted((Path(n) for n in names), key=natural_key)
    assert [p.name for p in ordered] == ["cover.jpg", "img1.jpg", "IMG2.jpg", "img10.jpg"]


@pytest.fixture
def repository():
    repo = Mock()
    repo.list_posts = AsyncMock(return_value=[BlogPost(1, "First"), BlogPost(2, "Second")])
    repo.update_post = AsyncMock()
    return repo


def _images(tmp_path, *names):
    paths = []
    for name in names:
        path = tmp_path / name
        path.write_bytes(name.encode())
        paths.append(path)
    return paths


@pytest.mark.asyncio
async def test_pairs_in_natural_order(tmp_path, storage, repository):
    images = _images(tmp_path, "post10.jpg", "post2.jpg")

    result = await BlogImagePairingOrchestrator(storage, repository).run(images)

    assert result.updated == 2
    assert result.failed == 0
    assert [r.filename for r in result.results] == ["post2.jpg", "post10.jpg"]
    assert [c[0] for c in storage.calls] == [b"post2.jpg", b"post10.jpg"]
    assert all(c[2].startswith("blog/") for c in storage.calls)

    first_id, first_update = repository.update_post.await_args_list[0].args
    assert first_id == 1
    assert first_update == {"featured_image": result.results[0].url, "featured_image_alt": "First"}


@pytest.mark.asyncio
async def test_pairs_only_minimum(tmp_path, storage, repository):
    images = _images(tmp_path, "a1.jpg", "a2.jpg", "a3.jpg")

    result = await BlogImagePairingOrchestrator(storage, repository).run(images)

    assert len(result.results) == 2
    assert len(storage.calls) == 2


@pytest.mark.asyncio
async def test_explicit_posts_skip_fetch(tmp_path, storage, repository):
    images = _images(tmp_path, "a1.jpg")

    result = await BlogImagePairingOrchestrator(storage, repository).run(images, posts=[BlogPost(9, "Ninth")])

    repository.list_posts.assert_not_awaited()
    assert result.results[0].post.id == 9


@pytest.mark.asyncio
async def test_failures_are_counted(tmp_path, storage, repository):
    good, bad = _images(tmp_path, "a1.jpg", "a2.jpg")
    bad.write_bytes(b"fail")

    result = await BlogImagePairingOrchestrator(storage, repository).run([good, bad])

    assert result.updated == 1
    assert result.failed == 1
    assert result.results[1].success is False
    assert "Upload failed" in result.results[1].error
    assert repository.update_post.await_count == 1


@pytest.mark.asyncio
async def test_post_update_failure(tmp_path, storage, repository):
    repository.update_post.side_effect = RuntimeError("row locked")

    result = await BlogImagePairingOrchestrator(storage, repository).run(_images(tmp_path, "a1.jpg"))

    assert result.failed == 1
    assert result.results[0].error == "row locked"


@pytest.mark.asyncio
async def test_large_images_are_compressed(tmp_path, storage, repository):
    path = tmp_path / "cover.png"
    Image.new("RGB", (300, 300), (10, 120, 10)).save(path, format="PNG")
    config = UploadConfig(compress_threshold=10, compress_max_size=100)

    result = await BlogImagePairingOrchestrator(storage, repository, config).run([path])

    data, content_type, object_path = storage.calls[0]
    assert result.updated == 1
    assert content_type == "image/jpeg"
    assert object_path.endswith(".jpg")
    with Image.open(BytesIO(data)) as img:
        assert img.size == (100, 100)


@pytest.mark.asyncio
async def test_undecodable_large_image_uploaded_as_is(tmp_path, storage, repository):
    path = tmp_path / "cover.png"
    path.write_bytes(b"x" * 64)
    config = UploadConfig(compress_threshold=10)

    result = await BlogImagePairingOrchestrator(storage, repository, config).run([path])

    data, content_type, _ = storage.calls[0]
    assert result.updated == 1
    assert data == b"x" * 64
    assert content_type == "image/png"


@pytest.mark.asyncio
async def test_keep_order_pairs_as_given(tmp_path, storage, repository):
    images = _images(tmp_path, "post10.jpg", "post2.jpg")

    result = await BlogImagePairingOrchestrator(storage, repository).run(images, keep_order=True)

    assert [r.filename for r in result.results] == ["post10.jpg", "post2.jpg"]
    assert [r.post.id for r in result.results] == [1, 2]
