"""Core orchestrator - holds the working set of groups and drives uploads."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..errors import UploadInProgressError
from ..models import FileType, PropertyGroup, Status, UploadConfig
from ..protocols import IPropertyDirectory, IStorageClient
from ..services.api_client import HTTPAPIClient
from ..services.property_directory import PropertyCatalog, PropertyDirectory
from ..services.storage import StorageService
from ..use_cases.matching import match_property
from ..use_cases.reconcile import ReconcileGalleryUseCase
from ..use_cases.upload_group import UploadGroupUseCase
from ..utils.events import EventEmitter
from .scanner import DroppedEntry, FolderScanner

logger = logging.getLogger(__name__)


class BulkUploadOrchestrator:
    """
    Orchestrates bulk property image ingestion using injected services.

    The working set is a tuple of frozen groups; every mutation swaps in a
    new tuple, so listeners can hold on to snapshots safely.

    Usage:
        async with BulkUploadOrchestrator(supabase_url, upload_url, api_key) as bulk:
            await bulk.add_drop([Path("Riverside Gardens")])
            await bulk.upload_all()

        # With injected services (tests, other backends)
        async with BulkUploadOrchestrator(directory=repo, storage=storage) as bulk:
            ...
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        upload_url: Optional[str] = None,
        api_key: Optional[str] = None,
        config: Optional[UploadConfig] = None,
        events: Optional[EventEmitter] = None,
        directory: Optional[IPropertyDirectory] = None,
        storage: Optional[IStorageClient] = None,
        scanner: Optional[FolderScanner] = None,
    ):
        """
        Args:
            api_url: Supabase project URL (REST root)
            upload_url: Storage function URL
            api_key: Anon or service key sent to both endpoints
            config: Upload configuration
            events: Event emitter shared with the CLI display
            directory: Pre-built property directory (skips the REST client)
            storage: Pre-built storage client (skips the storage HTTP client)
            scanner: Pre-built folder scanner
        """
        if directory is None and not api_url:
            raise ValueError("api_url is required when no directory is injected")
        if storage is None and not upload_url:
            raise ValueError("upload_url is required when no storage is injected")

        self._api_url = api_url
        self._upload_url = upload_url
        self._api_key = api_key
        self._config = config or UploadConfig()
        self.events = events or EventEmitter()

        self._external_directory = directory
        self._external_storage = storage
        self._scanner = scanner or FolderScanner(self._config)

        # Initialized in __aenter__
        self._api_client: Optional[HTTPAPIClient] = None
        self._storage_service: Optional[StorageService] = None
        self._directory: Optional[IPropertyDirectory] = directory
        self._storage: Optional[IStorageClient] = storage
        self.catalog: Optional[PropertyCatalog] = None
        self._uploader: Optional[UploadGroupUseCase] = None

        self._groups: Tuple[PropertyGroup, ...] = ()
        self._busy = False

    async def __aenter__(self):
        if self._external_directory is None:
            self._api_client = HTTPAPIClient(self._api_url, self._api_key, self._config.timeout)
            await self._api_client.__aenter__()
            self._directory = PropertyDirectory(self._api_client)

        if self._external_storage is None:
            self._storage_service = StorageService(self._upload_url, self._api_key, self._config.timeout)
            await self._storage_service.__aenter__()
            self._storage = self._storage_service

        self.catalog = PropertyCatalog(self._directory)
        self._uploader = UploadGroupUseCase(
            self._storage,
            ReconcileGalleryUseCase(self._directory),
            self._config,
            self.events,
        )
        return self

    async def __aexit__(self, *args):
        if self._storage_service:
            await self._storage_service.__aexit__(*args)
        if self._api_client:
            await self._api_client.__aexit__(*args)

    def _require_started(self) -> None:
        if self._uploader is None:
            raise RuntimeError("BulkUploadOrchestrator not initialized. Use 'async with' context.")

    # =========================================================================
    # Working set
    # =========================================================================

    @property
    def groups(self) -> Tuple[PropertyGroup, ...]:
        return self._groups

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def pending_count(self) -> int:
        return sum(1 for g in self._groups if g.is_uploadable)

    def _replace_group(self, old: PropertyGroup, new: PropertyGroup) -> bool:
        """Swap ``old`` for ``new`` by identity; False if ``old`` was discarded meanwhile."""
        for index, group in enumerate(self._groups):
            if group is old:
                self._groups = self._groups[:index] + (new,) + self._groups[index + 1:]
                return True
        return False

    async def add_drop(self, paths: Iterable[Path]) -> List[PropertyGroup]:
        """Scan dropped paths and append the resulting groups."""
        self._require_started()
        paths = [Path(p) for p in paths]
        entries = [DroppedEntry.from_path(p) for p in paths]
        for path, entry in zip(paths, entries):
            if entry is None:
                logger.warning(f"Dropped path does not exist: {path}")

        properties = await self.catalog.properties()
        new_groups = await asyncio.to_thread(self._scanner.scan, entries, properties)

        if not new_groups:
            logger.warning("No valid property folders found")
            await self.events.emit("no_groups")
            return []

        self._groups = self._groups + tuple(new_groups)
        logger.info(f"Processed {len(new_groups)} folders")
        await self.events.emit("groups_added", list(new_groups))
        return new_groups

    def remove_group(self, index: int) -> PropertyGroup:
        group = self._groups[index]
        self._groups = self._groups[:index] + self._groups[index + 1:]
        return group

    def clear(self) -> None:
        if self._busy:
            raise UploadInProgressError("Cannot clear groups while uploading")
        self._groups = ()

    def change_file_type(self, group_index: int, file_index: int, file_type: FileType) -> PropertyGroup:
        """Reclassify one file of a pending group."""
        group = self._groups[group_index]
        if group.status != Status.PENDING:
            raise ValueError(f"{group.display_name} is {group.status.value}; files can no longer be reclassified")
        files = list(group.files)
        files[file_index] = replace(files[file_index], file_type=FileType(file_type))
        updated = group.with_files(files)
        self._replace_group(group, updated)
        return updated

    def assign_property(self, group_index: int, property_id: int) -> PropertyGroup:
        """
        Manually match a pending group to a cached property.

        Raises:
            KeyError: if ``property_id`` is not in the loaded catalog
        """
        self._require_started()
        group = self._groups[group_index]
        if group.status != Status.PENDING:
            raise ValueError(f"{group.display_name} is {group.status.value}; it cannot be re-matched")
        prop = self.catalog.get(property_id)
        updated = replace(group, matched_property=prop)
        self._replace_group(group, updated)
        logger.info(f"{group.display_name} matched manually to {prop.title} ({prop.id})")
        return updated

    async def refresh_properties(self) -> int:
        """
        Re-fetch the property list and retry matching for unmatched pending groups.

        Returns:
            Number of groups that gained a match
        """
        self._require_started()
        properties = await self.catalog.refresh()
        matched = 0
        for group in self._groups:
            if group.status != Status.PENDING or group.is_matched:
                continue
            match = match_property(group.display_name, properties)
            if match is not None:
                self._replace_group(group, replace(group, matched_property=match))
                matched += 1
        return matched

    # =========================================================================
    # Uploads
    # =========================================================================

    async def _run_group(self, group: PropertyGroup) -> PropertyGroup:
        current = group
        if group.is_matched:
            current = group.with_status(Status.UPLOADING)
            if not self._replace_group(group, current):
                logger.debug(f"{group.display_name} was discarded before upload")
                return group
        result = await self._uploader.execute(group)
        if not self._replace_group(current, result):
            logger.debug(f"{group.display_name} was discarded during upload")
        return result

    async def upload_group(self, index: int) -> PropertyGroup:
        """Upload one pending group."""
        self._require_started()
        group = self._groups[index]
        if group.status != Status.PENDING:
            logger.warning(f"{group.display_name} is {group.status.value}; skipping")
            return group
        return await self._run_group(group)

    def _next_uploadable(self, attempted: List[PropertyGroup]) -> Optional[PropertyGroup]:
        for group in self._groups:
            if group.is_uploadable and not any(group is seen for seen in attempted):
                return group
        return None

    async def upload_all(self) -> List[PropertyGroup]:
        """
        Upload every pending, matched group one at a time in list order.

        The next target is read from the live working set on every pass, so
        groups reclassified or re-matched while the run is in flight are
        uploaded in their current form.

        Raises:
            UploadInProgressError: if another upload-all is running
        """
        self._require_started()
        if self._busy:
            raise UploadInProgressError("An upload is already in progress")

        self._busy = True
        try:
            logger.info(f"Uploading {self.pending_count} pending group(s)")
            attempted: List[PropertyGroup] = []
            results = []
            while True:
                group = self._next_uploadable(attempted)
                if group is None:
                    break
                attempted.append(group)
                results.append(await self._run_group(group))
            return results
        finally:
            self._busy = False
