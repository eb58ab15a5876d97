"""
property_uploader - bulk image ingestion for property records.

Dropped folders are grouped per top-level directory, matched to existing
properties by name, uploaded in batches of three to the storage function,
and linked into each property's hero / floor plan / gallery fields.

Usage:
    from property_uploader import BulkUploadOrchestrator

    async with BulkUploadOrchestrator(supabase_url, upload_url, api_key) as bulk:
        await bulk.add_drop([Path("drops/Riverside Gardens")])
        bulk.change_file_type(0, 2, FileType.HERO)
        await bulk.upload_all()

    # Blog featured images, paired by natural filename order
    pairing = BlogImagePairingOrchestrator(storage, BlogRepository(api))
    result = await pairing.run(images)
"""
from .errors import (
    APIError,
    IngestError,
    NoMatchError,
    ReconciliationError,
    ScanError,
    UploadError,
    UploadInProgressError,
)
from .models import (
    BlogPost,
    FileEntry,
    FileType,
    Property,
    PropertyGroup,
    ReconcilePlan,
    ReconcileResult,
    Status,
    UploadConfig,
)
from .orchestrator import BlogImagePairingOrchestrator, BulkUploadOrchestrator, FolderScanner
from .services import BlogRepository, HTTPAPIClient, PropertyCatalog, PropertyDirectory, StorageService
from .use_cases import classify_filename, match_property

__version__ = "0.1.0"
__all__ = [
    # Main
    "BulkUploadOrchestrator",
    "BlogImagePairingOrchestrator",
    "FolderScanner",
    "classify_filename",
    "match_property",
    # Models
    "BlogPost",
    "FileEntry",
    "FileType",
    "Property",
    "PropertyGroup",
    "ReconcilePlan",
    "ReconcileResult",
    "Status",
    "UploadConfig",
    # Services
    "BlogRepository",
    "HTTPAPIClient",
    "PropertyCatalog",
    "PropertyDirectory",
    "StorageService",
    # Errors
    "APIError",
    "IngestError",
    "NoMatchError",
    "ReconciliationError",
    "ScanError",
    "UploadError",
    "UploadInProgressError",
]
