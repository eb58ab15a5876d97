"""
Property Directory - Single Responsibility: read and patch property records.

Implements Repository Pattern over the ``properties`` table.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from ..models import Property
from ..protocols import IAPIClient, IPropertyDirectory

logger = logging.getLogger(__name__)

PROPERTIES_ENDPOINT = "/rest/v1/properties"
WRITABLE_FIELDS = {"gallery_images", "hero_image", "floor_plan_image"}


class PropertyNotFoundError(LookupError):
    """No property row has the requested id."""


class PropertyDirectory(IPropertyDirectory):
    """
    Repository for property records.

    Args:
        api_client: REST client rooted at the Supabase project URL
    """

    def __init__(self, api_client: IAPIClient):
        self._api = api_client

    async def list_properties(self) -> List[Property]:
        """All properties as ``{id, title}``, ordered by title."""
        response = await self._api.get(
            PROPERTIES_ENDPOINT,
            params={"select": "id,title", "order": "title.asc"},
        )
        return [
            Property(id=int(row["id"]), title=row.get("title") or "")
            for row in response.json()
        ]

    async def get_gallery(self, property_id: int) -> List[str]:
        """
        Current ``gallery_images`` of a property.

        Raises:
            PropertyNotFoundError: if no row has ``property_id``
        """
        response = await self._api.get(
            PROPERTIES_ENDPOINT,
            params={"select": "gallery_images", "id": f"eq.{property_id}"},
        )
        rows = response.json()
        if not rows:
            raise PropertyNotFoundError(f"Property {property_id} not found")
        return list(rows[0].get("gallery_images") or [])

    async def update_property(self, property_id: int, updates: Dict[str, Any]) -> None:
        """Partial update restricted to the image fields."""
        unknown = set(updates) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported property fields: {sorted(unknown)}")
        await self._api.patch(
            PROPERTIES_ENDPOINT,
            json=updates,
            params={"id": f"eq.{property_id}"},
        )


class PropertyCatalog:
    """
    Session-scoped cache of the property list used for matching.

    The list is fetched lazily on first use and kept until ``refresh()``;
    a drop after server-side changes sees the cached list until then.
    """

    def __init__(self, directory: IPropertyDirectory):
        self._directory = directory
        self._properties: Optional[List[Property]] = None
        self.loaded_at: Optional[datetime] = None

    @property
    def is_loaded(self) -> bool:
        return self._properties is not None

    async def properties(self) -> List[Property]:
        if self._properties is None:
            await self.refresh()
        return list(self._properties or [])

    async def refresh(self) -> List[Property]:
        """Re-fetch the list. Failures are logged and not cached."""
        try:
            properties = await self._directory.list_properties()
        except Exception as e:
            logger.error(f"Failed to load property list: {e}")
            return []
        self._properties = properties
        self.loaded_at = datetime.now()
        logger.info(f"Loaded {len(properties)} properties for matching")
        return list(properties)

    def get(self, property_id: int) -> Property:
        """Cached property by id; raises KeyError when unknown."""
        for prop in self._properties or []:
            if prop.id == property_id:
                return prop
        raise KeyError(property_id)
