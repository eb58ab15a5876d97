"""
Models for property_uploader.

Frozen dataclasses: every state change produces a new snapshot via
``dataclasses.replace`` so the working set can swap whole groups.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import mimetypes


class FileType(Enum):
    """Where an uploaded image ends up on the property record."""
    HERO = "hero"
    FLOORPLAN = "floorplan"
    GALLERY = "gallery"


SINGLETON_TYPES = (FileType.HERO, FileType.FLOORPLAN)


class Status(Enum):
    """Lifecycle of a file or a group: pending -> uploading -> complete | error."""
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class Property:
    """Existing property record as seen by the matcher."""
    id: int
    title: str


@dataclass(frozen=True)
class FileEntry:
    """One image found under a dropped folder."""
    path: Path
    file_type: FileType = FileType.GALLERY
    status: Status = Status.PENDING
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def content_type(self) -> str:
        mimetype, _ = mimetypes.guess_type(self.path.name)
        return mimetype or "application/octet-stream"

    @property
    def extension(self) -> str:
        return self.path.suffix.lstrip(".").lower()

    @property
    def succeeded(self) -> bool:
        return self.status == Status.COMPLETE and bool(self.url)

    def completed(self, url: str) -> "FileEntry":
        return replace(self, status=Status.COMPLETE, url=url, error=None)

    def failed(self, error: str) -> "FileEntry":
        return replace(self, status=Status.ERROR, error=error)


@dataclass(frozen=True)
class PropertyGroup:
    """All images under one top-level dropped folder."""
    display_name: str
    files: Tuple[FileEntry, ...]
    matched_property: Optional[Property] = None
    status: Status = Status.PENDING
    error: Optional[str] = None

    @property
    def property_id(self) -> Optional[int]:
        return self.matched_property.id if self.matched_property else None

    @property
    def is_matched(self) -> bool:
        return self.matched_property is not None

    @property
    def is_uploadable(self) -> bool:
        return self.status == Status.PENDING and self.is_matched

    def count_by_type(self) -> Dict[FileType, int]:
        counts = {file_type: 0 for file_type in FileType}
        for entry in self.files:
            counts[entry.file_type] += 1
        return counts

    def duplicate_singletons(self) -> List[FileType]:
        """Singleton types (hero, floorplan) carried by more than one file."""
        counts = self.count_by_type()
        return [file_type for file_type in SINGLETON_TYPES if counts[file_type] > 1]

    def with_status(self, status: Status, error: Optional[str] = None) -> "PropertyGroup":
        return replace(self, status=status, error=error)

    def with_files(self, files) -> "PropertyGroup":
        files = tuple(files)
        if [f.path for f in files] != [f.path for f in self.files]:
            raise ValueError("File membership of a group cannot change")
        return replace(self, files=files)


@dataclass(frozen=True)
class ReconcilePlan:
    """URLs to link into a property after a group upload."""
    hero_image: Optional[str] = None
    floor_plan_image: Optional[str] = None
    gallery_urls: Tuple[str, ...] = ()

    @classmethod
    def from_files(cls, files) -> "ReconcilePlan":
        """
        Build the plan from uploaded entries.

        Only the first successful hero and floorplan are linked; gallery
        takes files typed gallery only, so extra hero/floorplan uploads
        are linked nowhere.
        """
        successful = [f for f in files if f.succeeded]
        hero = next((f.url for f in successful if f.file_type == FileType.HERO), None)
        floorplan = next((f.url for f in successful if f.file_type == FileType.FLOORPLAN), None)
        gallery = tuple(f.url for f in successful if f.file_type == FileType.GALLERY)
        return cls(hero_image=hero, floor_plan_image=floorplan, gallery_urls=gallery)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a property reconciliation write."""
    property_id: int
    added: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()
    hero_image: Optional[str] = None
    floor_plan_image: Optional[str] = None
    gallery_size: int = 0


@dataclass(frozen=True)
class BlogPost:
    """Blog post targeted by the featured-image pairing."""
    id: int
    title: str


@dataclass(frozen=True)
class BlogPairResult:
    """Result for one image/post pair."""
    post: BlogPost
    filename: str
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.url is not None


@dataclass(frozen=True)
class BlogPairingResult:
    updated: int
    failed: int
    results: List[BlogPairResult] = field(default_factory=list)


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for ingestion runs."""
    batch_size: int = 3
    path_prefix: str = "properties"
    blog_path_prefix: str = "blog"
    scan_batch_size: int = 100
    timeout: int = 60
    compress_threshold: int = 2 * 1024 * 1024  # 2MB
    compress_max_size: int = 1920
    compress_quality: int = 80
