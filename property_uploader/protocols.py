"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused interfaces so use cases can be driven by mocks in tests.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import BlogPost, Property


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for REST operations."""

    async def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        ...

    async def patch(self, endpoint: str, json: Dict, params: Optional[Dict] = None) -> Any:
        ...


@runtime_checkable
class IStorageClient(Protocol):
    """Interface for the object storage upload endpoint."""

    async def upload_bytes(self, data: bytes, content_type: str, path: str) -> str:
        """Store ``data`` at ``path`` and return its public URL."""
        ...


@runtime_checkable
class IDirectoryReader(Protocol):
    """Batch-paginated directory listing; an empty batch means exhausted."""

    def read_entries(self) -> List[Any]:
        ...


class IPropertyDirectory(ABC):
    """Read model and partial update for property records (Repository Pattern)."""

    @abstractmethod
    async def list_properties(self) -> List[Property]:
        pass

    @abstractmethod
    async def get_gallery(self, property_id: int) -> List[str]:
        pass

    @abstractmethod
    async def update_property(self, property_id: int, updates: Dict[str, Any]) -> None:
        pass


class IBlogRepository(ABC):
    """Blog posts targeted by the featured-image pairing."""

    @abstractmethod
    async def list_posts(self) -> List[BlogPost]:
        pass

    @abstractmethod
    async def update_post(self, post_id: int, updates: Dict[str, Any]) -> None:
        pass
