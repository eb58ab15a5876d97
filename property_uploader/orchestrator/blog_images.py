"""
Blog featured-image pairing.

Images are naturally sorted by name and paired by position with blog
posts; each pair uploads one image and sets the post's featured image.
"""
from __future__ import annotations

import asyncio
import logging
import mimetypes
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..errors import UploadError
from ..models import BlogPairingResult, BlogPairResult, BlogPost, UploadConfig
from ..protocols import IBlogRepository, IStorageClient
from ..services.compression import compress_image
from ..services.storage import generate_object_path

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def natural_key(path: Path) -> tuple:
    """Sort key so "img2" comes before "img10", ignoring case."""
    parts = _DIGITS.split(Path(path).name.lower())
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in parts)


class BlogImagePairingOrchestrator:
    """Pairs dropped images with blog posts by position."""

    def __init__(
        self,
        storage: IStorageClient,
        repository: IBlogRepository,
        config: Optional[UploadConfig] = None,
    ):
        self._storage = storage
        self._repository = repository
        self._config = config or UploadConfig()

    def _prepare(self, path: Path) -> Tuple[bytes, str, str]:
        """Read the image, compressing it when over the threshold."""
        data = path.read_bytes()
        filename = path.name
        if len(data) > self._config.compress_threshold:
            try:
                data, filename = compress_image(
                    data,
                    filename,
                    max_size=self._config.compress_max_size,
                    quality=self._config.compress_quality,
                )
            except OSError as e:
                logger.warning(f"Compression failed for {path.name}, using original: {e}")
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        return data, filename, content_type

    async def _process_pair(self, path: Path, post: BlogPost) -> BlogPairResult:
        try:
            data, filename, content_type = await asyncio.to_thread(self._prepare, path)
            object_path = generate_object_path(self._config.blog_path_prefix, filename)
            url = await self._storage.upload_bytes(data, content_type, object_path)
            if not url:
                raise UploadError("No URL returned")
            await self._repository.update_post(post.id, {
                "featured_image": url,
                "featured_image_alt": post.title,
            })
        except Exception as e:
            logger.error(f"Failed to upload for post {post.title}: {e}")
            return BlogPairResult(post=post, filename=path.name, error=str(e) or type(e).__name__)

        logger.info(f"{post.title} <- {path.name}")
        return BlogPairResult(post=post, filename=path.name, url=url)

    async def run(
        self,
        images: Sequence[Path],
        posts: Optional[Sequence[BlogPost]] = None,
        keep_order: bool = False,
    ) -> BlogPairingResult:
        """
        Pair ``images`` with ``posts`` (fetched when not given) one at a time.

        Images are naturally sorted by name unless ``keep_order`` is set, in
        which case they pair in the order given. Only
        ``min(len(images), len(posts))`` pairs are processed.
        """
        if posts is None:
            posts = await self._repository.list_posts()

        ordered = [Path(p) for p in images]
        if not keep_order:
            ordered.sort(key=natural_key)
        pairs = list(zip(ordered, posts))
        if len(ordered) != len(posts):
            logger.warning(f"{len(ordered)} images for {len(posts)} posts; pairing {len(pairs)}")

        results: List[BlogPairResult] = []
        for path, post in pairs:
            results.append(await self._process_pair(path, post))

        updated = sum(1 for r in results if r.success)
        failed = len(results) - updated
        if updated:
            logger.info(f"Successfully updated {updated} blog posts")
        if failed:
            logger.error(f"Failed to update {failed} posts")
        return BlogPairingResult(updated=updated, failed=failed, results=results)
