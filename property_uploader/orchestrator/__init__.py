"""Orchestrator package - scanning, the working set and bulk runs."""
from .blog_images import BlogImagePairingOrchestrator, natural_key
from .core import BulkUploadOrchestrator
from .scanner import DroppedEntry, EntryKind, FolderScanner, LocalDirectoryReader

__all__ = [
    "BlogImagePairingOrchestrator",
    "BulkUploadOrchestrator",
    "DroppedEntry",
    "EntryKind",
    "FolderScanner",
    "LocalDirectoryReader",
    "natural_key",
]
