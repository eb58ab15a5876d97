"""Services for property_uploader."""
from .api_client import HTTPAPIClient
from .blog_repository import BlogRepository
from .compression import compress_image
from .property_directory import PropertyCatalog, PropertyDirectory, PropertyNotFoundError
from .storage import StorageService, generate_object_path

__all__ = [
    "HTTPAPIClient",
    "BlogRepository",
    "compress_image",
    "PropertyCatalog",
    "PropertyDirectory",
    "PropertyNotFoundError",
    "StorageService",
    "generate_object_path",
]
