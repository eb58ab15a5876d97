"""Merge uploaded URLs into a property record."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..errors import ReconciliationError
from ..models import ReconcilePlan, ReconcileResult
from ..protocols import IPropertyDirectory

logger = logging.getLogger(__name__)


class ReconcileGalleryUseCase:
    """
    Append new gallery URLs and set hero / floor plan in one update.

    Not transactional with the uploads: if this fails, stored objects stay
    unreferenced.
    """

    def __init__(self, directory: IPropertyDirectory):
        self._directory = directory

    @staticmethod
    def _dedupe(current: List[str], new_urls) -> tuple:
        seen = set(current)
        added: List[str] = []
        skipped: List[str] = []
        for url in new_urls:
            if url in seen:
                skipped.append(url)
                continue
            seen.add(url)
            added.append(url)
        return added, skipped

    async def execute(self, property_id: int, plan: ReconcilePlan) -> ReconcileResult:
        try:
            current = await self._directory.get_gallery(property_id)
        except Exception as exc:
            raise ReconciliationError(
                f"Could not read gallery of property {property_id}: {exc}"
            ) from exc

        added, skipped = self._dedupe(current, plan.gallery_urls)
        updates: Dict[str, Any] = {"gallery_images": current + added}
        if plan.hero_image:
            updates["hero_image"] = plan.hero_image
        if plan.floor_plan_image:
            updates["floor_plan_image"] = plan.floor_plan_image

        try:
            await self._directory.update_property(property_id, updates)
        except Exception as exc:
            raise ReconciliationError(
                f"Could not update property {property_id}: {exc}"
            ) from exc

        if skipped:
            logger.debug(f"Property {property_id}: {len(skipped)} gallery URL(s) already present")
        logger.info(
            f"Property {property_id} updated: +{len(added)} gallery, "
            f"hero={'yes' if plan.hero_image else 'no'}, "
            f"floorplan={'yes' if plan.floor_plan_image else 'no'}"
        )
        return ReconcileResult(
            property_id=property_id,
            added=tuple(added),
            skipped=tuple(skipped),
            hero_image=plan.hero_image,
            floor_plan_image=plan.floor_plan_image,
            gallery_size=len(updates["gallery_images"]),
        )
