"""Blog post repository used by the featured-image pairing."""
from datetime import datetime, timezone
from typing import Any, Dict, List

from ..models import BlogPost
from ..protocols import IAPIClient, IBlogRepository

BLOG_POSTS_ENDPOINT = "/rest/v1/blog_posts"


class BlogRepository(IBlogRepository):
    """Repository over the ``blog_posts`` table."""

    def __init__(self, api_client: IAPIClient, limit: int = 100):
        self._api = api_client
        self._limit = limit

    async def list_posts(self) -> List[BlogPost]:
        """Newest published first, drafts last."""
        response = await self._api.get(
            BLOG_POSTS_ENDPOINT,
            params={
                "select": "id,title",
                "order": "published_at.desc.nullslast",
                "limit": str(self._limit),
            },
        )
        return [BlogPost(id=int(row["id"]), title=row.get("title") or "") for row in response.json()]

    async def update_post(self, post_id: int, updates: Dict[str, Any]) -> None:
        payload = dict(updates)
        payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        await self._api.patch(
            BLOG_POSTS_ENDPOINT,
            json=payload,
            params={"id": f"eq.{post_id}"},
        )
