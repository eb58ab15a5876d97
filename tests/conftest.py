"""Shared fakes for pipeline tests."""
import asyncio
from typing import Any, Dict, List

import pytest

from property_uploader.models import Property
from property_uploader.protocols import IPropertyDirectory


class FakePropertyDirectory(IPropertyDirectory):
    """In-memory properties table."""

    def __init__(self, properties: List[Property]):
        self.rows: Dict[int, Dict[str, Any]] = {
            p.id: {"id": p.id, "title": p.title, "gallery_images": [], "hero_image": None, "floor_plan_image": None}
            for p in properties
        }
        self.list_calls = 0
        self.updates: List[tuple] = []
        self.fail_updates = False

    async def list_properties(self) -> List[Property]:
        self.list_calls += 1
        return [Property(id=row["id"], title=row["title"]) for row in self.rows.values()]

    async def get_gallery(self, property_id: int) -> List[str]:
        return list(self.rows[property_id]["gallery_images"])

    async def update_property(self, property_id: int, updates: Dict[str, Any]) -> None:
        if self.fail_updates:
            raise RuntimeError("database unavailable")
        self.updates.append((property_id, dict(updates)))
        self.rows[property_id].update(updates)


class FakeStorage:
    """Records uploads; bodies equal to b"fail" are rejected."""

    def __init__(self, delay: float = 0):
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._delay = delay

    async def upload_bytes(self, data: bytes, content_type: str, path: str) -> str:
        self.calls.append((data, content_type, path))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._delay)
            if data == b"fail":
                raise RuntimeError("Upload failed")
            return f"https://cdn.test/{path}"
        finally:
            self.in_flight -= 1


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def directory():
    return FakePropertyDirectory([
        Property(id=5, title="Riverside Gardens"),
        Property(id=7, title="Oak House"),
        Property(id=8, title="Oak House Annex"),
    ])


def make_folder(root, name, files):
    """Create ``root/name`` with ``files`` ({relative path: bytes})."""
    folder = root / name
    folder.mkdir(parents=True)
    for rel, data in files.items():
        target = folder / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return folder


@pytest.fixture
def folder_factory(tmp_path):
    drops = tmp_path / "drops"
    drops.mkdir()

    def factory(name, files):
        return make_folder(drops, name, files)

    return factory


@pytest.fixture
def directory_factory():
    return FakePropertyDirectory


@pytest.fixture
def storage_factory():
    return FakeStorage
