"""Upload one property group and link the results."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from ..errors import NoMatchError, ReconciliationError
from ..models import FileEntry, PropertyGroup, ReconcilePlan, Status, UploadConfig
from ..protocols import IStorageClient
from ..services.storage import generate_object_path
from ..utils.events import EventEmitter
from .reconcile import ReconcileGalleryUseCase

logger = logging.getLogger(__name__)


def _describe_exception(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return f"{type(exc).__name__}: {repr(exc)}"


def chunked(items: Sequence, size: int) -> List[Sequence]:
    """Split ``items`` into consecutive slices of ``size``, preserving order."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class UploadGroupUseCase:
    """
    Upload a group's files in fixed-size concurrent batches, then reconcile.

    - Batches run one after another; files inside a batch run concurrently
    - A failing file only marks that file as error
    - Only a failed reconciliation marks the group as error
    """

    def __init__(
        self,
        storage: IStorageClient,
        reconcile: ReconcileGalleryUseCase,
        config: Optional[UploadConfig] = None,
        events: Optional[EventEmitter] = None,
    ):
        self._storage = storage
        self._reconcile = reconcile
        self._config = config or UploadConfig()
        self._events = events or EventEmitter()

    async def _upload_entry(self, group: PropertyGroup, entry: FileEntry) -> FileEntry:
        if entry.status == Status.COMPLETE:
            return entry

        try:
            data = await asyncio.to_thread(Path(entry.path).read_bytes)
            path = generate_object_path(self._config.path_prefix, entry.name)
            url = await self._storage.upload_bytes(data, entry.content_type, path)
        except Exception as e:
            error_msg = _describe_exception(e)
            logger.error(f"Error uploading {entry.name} for {group.display_name}: {error_msg}")
            failed = entry.failed(error_msg)
            await self._events.emit("file_fail", group, failed)
            return failed

        done = entry.completed(url)
        await self._events.emit("file_complete", group, done)
        return done

    async def _upload_files(self, group: PropertyGroup) -> List[FileEntry]:
        results = list(group.files)
        batch_size = self._config.batch_size
        for batch_index, batch in enumerate(chunked(group.files, batch_size)):
            batch_results = await asyncio.gather(
                *(self._upload_entry(group, entry) for entry in batch)
            )
            start = batch_index * batch_size
            for offset, result in enumerate(batch_results):
                results[start + offset] = result
        return results

    async def execute(self, group: PropertyGroup) -> PropertyGroup:
        if not group.is_matched:
            error = NoMatchError(group.display_name)
            logger.warning(str(error))
            failed = group.with_status(Status.ERROR, str(error))
            await self._events.emit("group_fail", failed)
            return failed

        duplicates = group.duplicate_singletons()
        if duplicates:
            names = ", ".join(file_type.value for file_type in duplicates)
            logger.warning(
                f"{group.display_name}: more than one {names} image; "
                f"only the first is linked, the rest are uploaded but unreferenced"
            )
            await self._events.emit("duplicate_singleton", group, duplicates)

        group = group.with_status(Status.UPLOADING)
        await self._events.emit("group_start", group)
        logger.info(
            f"Uploading {len(group.files)} files for {group.display_name} "
            f"-> property {group.property_id}"
        )

        files = await self._upload_files(group)
        group = group.with_files(files)

        uploaded = sum(1 for f in files if f.succeeded)
        failed = len(files) - uploaded
        logger.info(f"{group.display_name}: {uploaded} uploaded, {failed} failed")

        if uploaded == 0:
            logger.warning(f"{group.display_name}: no files uploaded, property left untouched")
        else:
            try:
                await self._reconcile.execute(group.property_id, ReconcilePlan.from_files(files))
            except ReconciliationError as e:
                logger.error(f"Failed to update property for {group.display_name}: {e}")
                group = group.with_status(Status.ERROR, str(e))
                await self._events.emit("group_fail", group)
                return group

        group = group.with_status(Status.COMPLETE)
        await self._events.emit("group_complete", group)
        return group
