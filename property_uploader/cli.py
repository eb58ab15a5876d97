"""Command line interface for property_uploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    GroupUploadProgressDisplay,
    render_blog_result,
    render_configuration_summary,
    render_groups_table,
)
from .models import FileType, PropertyGroup, Status, UploadConfig


UPLOAD_FUNCTION_PATH = "/functions/v1/make-server-e2fc9a7e/upload"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level and not os.getenv("LOG_LEVEL")):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _resolve_upload_url(supabase_url: Optional[str]) -> Optional[str]:
    explicit = os.getenv("UPLOAD_FUNCTION_URL")
    if explicit:
        return explicit
    if supabase_url:
        return supabase_url.rstrip("/") + UPLOAD_FUNCTION_PATH
    return None


def _parse_match(value: str) -> Tuple[str, int]:
    """``"Folder Name=12"`` -> ("Folder Name", 12)."""
    folder, sep, raw_id = value.rpartition("=")
    if not sep or not folder.strip():
        raise CLIError(f"invalid --match value (expected FOLDER=ID): {value}")
    try:
        return folder.strip(), int(raw_id)
    except ValueError as exc:
        raise CLIError(f"invalid property id in --match: {raw_id}") from exc


def _parse_set_type(value: str) -> Tuple[str, str, FileType]:
    """``"Folder/photo.jpg=hero"`` -> ("Folder", "photo.jpg", FileType.HERO)."""
    target, sep, raw_type = value.rpartition("=")
    folder, slash, filename = target.partition("/")
    if not sep or not slash or not folder or not filename:
        raise CLIError(f"invalid --set-type value (expected FOLDER/FILE=TYPE): {value}")
    try:
        return folder, filename, FileType(raw_type.strip().lower())
    except ValueError as exc:
        choices = ", ".join(t.value for t in FileType)
        raise CLIError(f"invalid type {raw_type!r} in --set-type (choose from {choices})") from exc


def _find_group(groups: Sequence[PropertyGroup], folder: str) -> int:
    for index, group in enumerate(groups):
        if group.display_name == folder:
            return index
    raise CLIError(f"no dropped folder named {folder!r}")


def _apply_overrides(orchestrator, matches: List[Tuple[str, int]], types: List[Tuple[str, str, FileType]]) -> None:
    for folder, property_id in matches:
        index = _find_group(orchestrator.groups, folder)
        try:
            orchestrator.assign_property(index, property_id)
        except KeyError as exc:
            raise CLIError(f"unknown property id {property_id} for {folder!r}") from exc

    for folder, filename, file_type in types:
        index = _find_group(orchestrator.groups, folder)
        files = orchestrator.groups[index].files
        for file_index, entry in enumerate(files):
            if entry.name == filename:
                orchestrator.change_file_type(index, file_index, file_type)
                break
        else:
            raise CLIError(f"no image named {filename!r} in {folder!r}")


def _exit_code(groups: Sequence[PropertyGroup]) -> int:
    if any(g.status == Status.ERROR for g in groups):
        return 1
    if any(not g.is_matched for g in groups):
        return 1
    return 0


async def _run_upload(
    folders: List[Path],
    supabase_url: str,
    upload_url: str,
    api_key: Optional[str],
    matches: List[Tuple[str, int]],
    types: List[Tuple[str, str, FileType]],
    dry_run: bool,
) -> int:
    from .orchestrator import BulkUploadOrchestrator

    async with BulkUploadOrchestrator(supabase_url, upload_url, api_key, UploadConfig()) as orchestrator:
        groups = await orchestrator.add_drop(folders)
        if not groups:
            print("ERROR: No valid property folders found", file=sys.stderr)
            return 1

        _apply_overrides(orchestrator, matches, types)
        render_groups_table(orchestrator.groups)

        if dry_run:
            return 0

        display = GroupUploadProgressDisplay()
        display.attach(orchestrator.events)
        try:
            await orchestrator.upload_all()
        finally:
            display.on_finish(orchestrator.groups)
        render_groups_table(orchestrator.groups)
        return _exit_code(orchestrator.groups)


def _collect_blog_images(sources: Sequence[Path]) -> List[Path]:
    """
    Expand ``--blog`` sources into image paths.

    A directory contributes its images; files are taken in the order given.
    """
    from .orchestrator.scanner import is_image

    images: List[Path] = []
    for source in sources:
        source = source.expanduser()
        if source.is_dir():
            images.extend(p for p in sorted(source.iterdir()) if p.is_file() and is_image(p))
        elif source.is_file():
            if not is_image(source):
                raise CLIError(f"not an image: {source}")
            images.append(source)
        else:
            raise CLIError(f"source does not exist: {source}")
    if not images:
        raise CLIError(f"no images found in {', '.join(str(s) for s in sources)}")
    return images


async def _run_blog(
    images: List[Path],
    supabase_url: str,
    upload_url: str,
    api_key: Optional[str],
    keep_order: bool = False,
) -> int:
    from .orchestrator import BlogImagePairingOrchestrator
    from .services import BlogRepository, HTTPAPIClient, StorageService

    config = UploadConfig()
    async with HTTPAPIClient(supabase_url, api_key, config.timeout) as api, \
            StorageService(upload_url, api_key, config.timeout) as storage:
        pairing = BlogImagePairingOrchestrator(storage, BlogRepository(api), config)
        result = await pairing.run(images, keep_order=keep_order)
    render_blog_result(result)
    return 0 if result.failed == 0 and result.updated > 0 else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="property-upload",
        description="Upload property image folders and link them to matching property records.",
    )
    parser.add_argument("folders", nargs="*", type=Path, help="Dropped folders, one per property")
    parser.add_argument(
        "--match",
        action="append",
        default=[],
        metavar="FOLDER=ID",
        help="Manually match a folder to a property id (repeatable)",
    )
    parser.add_argument(
        "--set-type",
        action="append",
        default=[],
        metavar="FOLDER/FILE=TYPE",
        help="Override a file's classification: hero, floorplan or gallery (repeatable)",
    )
    parser.add_argument("-n", "--dry-run", action="store_true", help="Scan and match only")
    parser.add_argument(
        "--blog",
        type=Path,
        nargs="+",
        default=None,
        metavar="IMAGES",
        help="Pair images (a folder or image files) with blog posts as featured images",
    )
    parser.add_argument(
        "--keep-order",
        action="store_true",
        help="Pair --blog images in the order given instead of natural filename order",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"property-upload {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if not args.folders and args.blog is None:
        parser.print_help()
        return 0

    try:
        matches = [_parse_match(value) for value in args.match]
        types = [_parse_set_type(value) for value in args.set_type]
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    supabase_url = os.getenv("SUPABASE_URL")
    api_key = os.getenv("SUPABASE_ANON_KEY")
    upload_url = _resolve_upload_url(supabase_url)

    summary: Dict[str, str] = {
        "Mode": "blog" if args.blog else ("dry run" if args.dry_run else "upload"),
        "Source": ", ".join(str(b) for b in args.blog) if args.blog else ", ".join(str(f) for f in args.folders),
        "Supabase": supabase_url or "(missing)",
        "Upload Function": upload_url or "(missing)",
        "API Key": "set" if api_key else "(missing)",
        "Manual Matches": str(len(matches)),
        "Env File": str(used_env_file) if used_env_file else "-",
        "Logging": effective_log_mode,
    }
    render_configuration_summary(summary)

    try:
        if not supabase_url:
            raise CLIError("SUPABASE_URL environment variable is not set")

        if args.blog is not None:
            images = _collect_blog_images(args.blog)
            return asyncio.run(_run_blog(images, supabase_url, upload_url, api_key, args.keep_order))

        missing = [str(f) for f in args.folders if not f.expanduser().exists()]
        if missing:
            raise CLIError(f"source does not exist: {', '.join(missing)}")
        folders = [f.expanduser() for f in args.folders]
        return asyncio.run(
            _run_upload(
                folders=folders,
                supabase_url=supabase_url,
                upload_url=upload_url,
                api_key=api_key,
                matches=matches,
                types=types,
                dry_run=args.dry_run,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
