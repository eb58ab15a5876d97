"""
Folder Scanner - turns dropped folders into property groups.

Only top-level directories become groups. Everything below them is
flattened into one list of images per group.
"""
from dataclasses import dataclass
from enum import Enum
from itertools import islice
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence
import logging
import mimetypes
import os

from ..errors import ScanError
from ..models import FileEntry, Property, PropertyGroup, UploadConfig
from ..protocols import IDirectoryReader
from ..use_cases.classify import classify_filename
from ..use_cases.matching import match_property

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class DroppedEntry:
    """A dropped or discovered entry, resolved once as file or directory."""
    kind: EntryKind
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path) -> Optional["DroppedEntry"]:
        path = Path(path)
        if path.is_dir():
            return cls(EntryKind.DIRECTORY, path)
        if path.is_file():
            return cls(EntryKind.FILE, path)
        return None


def is_image(path: Path) -> bool:
    mimetype, _ = mimetypes.guess_type(path.name)
    return bool(mimetype) and mimetype.startswith("image/")


class LocalDirectoryReader:
    """
    Pages a local directory listing in batches.

    Entries are sorted by name so discovery order is stable. An empty batch
    means the listing is exhausted.
    """

    def __init__(self, path: Path, batch_size: int = 100):
        self._path = Path(path)
        self._batch_size = batch_size
        self._iterator: Optional[Iterator[DroppedEntry]] = None

    def _open(self) -> Iterator[DroppedEntry]:
        with os.scandir(self._path) as listing:
            items = sorted(listing, key=lambda item: item.name)
        for item in items:
            if item.is_dir(follow_symlinks=False):
                kind = EntryKind.DIRECTORY
            elif item.is_dir():
                # linked directories can point back up the tree
                logger.debug(f"Skipping symlinked directory: {item.path}")
                continue
            else:
                kind = EntryKind.FILE
            yield DroppedEntry(kind, Path(item.path))

    def read_entries(self) -> List[DroppedEntry]:
        if self._iterator is None:
            self._iterator = self._open()
        return list(islice(self._iterator, self._batch_size))


ReaderFactory = Callable[[Path], IDirectoryReader]


class FolderScanner:
    """Collects images per top-level dropped directory."""

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        reader_factory: Optional[ReaderFactory] = None,
    ):
        self._config = config or UploadConfig()
        self._reader_factory = reader_factory or (
            lambda path: LocalDirectoryReader(path, self._config.scan_batch_size)
        )

    def read_directory(self, entry: DroppedEntry) -> List[DroppedEntry]:
        """Read every batch of a directory listing until an empty batch."""
        reader = self._reader_factory(entry.path)
        entries: List[DroppedEntry] = []
        while True:
            batch = reader.read_entries()
            if not batch:
                break
            entries.extend(batch)
        return entries

    def scan_entry(self, entry: DroppedEntry) -> List[Path]:
        """
        Flatten all files under ``entry``.

        A branch that cannot be read is logged and contributes nothing.
        """
        if entry.kind == EntryKind.FILE:
            try:
                entry.path.stat()
            except OSError as e:
                logger.warning(str(ScanError(f"Error reading file entry {entry.name}: {e}")))
                return []
            return [entry.path]

        try:
            children = self.read_directory(entry)
        except OSError as e:
            logger.warning(str(ScanError(f"Error reading directory {entry.name}: {e}")))
            return []

        files: List[Path] = []
        for child in children:
            files.extend(self.scan_entry(child))
        return files

    def scan(
        self,
        entries: Iterable[DroppedEntry],
        properties: Sequence[Property] = (),
    ) -> List[PropertyGroup]:
        """
        Build groups from top-level entries, in the order given.

        Loose top-level files are ignored; folders without images produce
        no group.
        """
        groups: List[PropertyGroup] = []
        for entry in entries:
            if entry is None:
                continue
            if entry.kind != EntryKind.DIRECTORY:
                logger.debug(f"Ignoring loose file: {entry.name}")
                continue

            files = self.scan_entry(entry)
            images = [path for path in files if is_image(path)]
            skipped = len(files) - len(images)
            if skipped:
                logger.debug(f"{entry.name}: skipped {skipped} non-image file(s)")
            if not images:
                logger.info(f"No images found in {entry.name}")
                continue

            match = match_property(entry.name, properties)
            if match is None:
                logger.warning(f"No property matched for {entry.name}")
            groups.append(PropertyGroup(
                display_name=entry.name,
                files=tuple(FileEntry(path=path, file_type=classify_filename(path.name)) for path in images),
                matched_property=match,
            ))
            logger.info(f"Found {len(images)} images in {entry.name}")
        return groups
