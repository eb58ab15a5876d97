"""Console rendering and progress helpers for the property-upload CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import BlogPairingResult, FileEntry, FileType, PropertyGroup, Status

console = Console()

GroupKey = Tuple[Any, ...]

STATUS_STYLES = {
    Status.PENDING: "yellow",
    Status.UPLOADING: "cyan",
    Status.COMPLETE: "green",
    Status.ERROR: "red",
}


def _echo(message: str) -> None:
    console.print(message)


def _group_key(group: PropertyGroup) -> GroupKey:
    # stable across status copies; two folders with one basename still differ
    return tuple(entry.path for entry in group.files)


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]property-upload[/bold green]",
        subtitle="[dim]bulk image ingestion[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_groups_table(groups: Sequence[PropertyGroup]) -> None:
    """One row per dropped folder: match, images per type, status."""
    table = Table(title="Property folders", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Folder", style="bold")
    table.add_column("Property")
    table.add_column("Hero", justify="right")
    table.add_column("Floorplan", justify="right")
    table.add_column("Gallery", justify="right")
    table.add_column("Status")

    for index, group in enumerate(groups):
        counts = group.count_by_type()
        if group.matched_property:
            matched = f"[green]{escape(group.matched_property.title)}[/green] [dim]({group.matched_property.id})[/dim]"
        else:
            matched = "[red]no match[/red]"
        style = STATUS_STYLES[group.status]
        status = f"[{style}]{group.status.value}[/{style}]"
        if group.error:
            status += f" [dim]{escape(group.error)}[/dim]"
        table.add_row(
            str(index),
            escape(group.display_name),
            matched,
            str(counts[FileType.HERO]),
            str(counts[FileType.FLOORPLAN]),
            str(counts[FileType.GALLERY]),
            status,
        )
    console.print(table)


class GroupUploadProgressDisplay:
    """Event-based console display for group uploads."""

    def __init__(self):
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=32),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._tasks: Dict[GroupKey, TaskID] = {}
        self._stats: Dict[str, int] = {"uploaded": 0, "failed": 0}
        self._started = False

    def _emit_timeline(self, status: str, kind: str, name: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        error_label = f" cause={escape(error)}" if error else ""
        palette = {
            "DONE": "green",
            "FAIL": "red",
            "WARN": "yellow",
            "INFO": "blue",
        }
        color = palette.get(status, "white")
        self._progress.console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {kind}: {escape(name)}{error_label}"
        )

    def _advance(self, group: PropertyGroup) -> None:
        task_id = self._tasks.get(_group_key(group))
        if task_id is None:
            return
        self._progress.update(
            task_id,
            advance=1,
            detail=f"uploaded={self._stats['uploaded']} failed={self._stats['failed']}",
        )

    def on_group_start(self, group: PropertyGroup) -> None:
        if not self._started:
            self._progress.start()
            self._started = True
        self._tasks[_group_key(group)] = self._progress.add_task(
            "group",
            label=escape(group.display_name[:40]),
            total=max(len(group.files), 1),
            detail="starting...",
        )

    def on_file_complete(self, group: PropertyGroup, entry: FileEntry) -> None:
        self._stats["uploaded"] += 1
        self._advance(group)

    def on_file_fail(self, group: PropertyGroup, entry: FileEntry) -> None:
        self._stats["failed"] += 1
        self._advance(group)
        self._emit_timeline("FAIL", "file", f"{group.display_name}/{entry.name}", error=entry.error)

    def on_duplicate_singleton(self, group: PropertyGroup, file_types: List[FileType]) -> None:
        names = ", ".join(file_type.value for file_type in file_types)
        self._emit_timeline(
            "WARN",
            "group",
            f"{group.display_name} has several {names} images; extras will not be linked",
        )

    def on_group_complete(self, group: PropertyGroup) -> None:
        task_id = self._tasks.pop(_group_key(group), None)
        if task_id is not None:
            self._progress.remove_task(task_id)
        title = group.matched_property.title if group.matched_property else group.display_name
        self._emit_timeline("DONE", "group", f"Uploaded files for {title}")

    def on_group_fail(self, group: PropertyGroup) -> None:
        task_id = self._tasks.pop(_group_key(group), None)
        if task_id is not None:
            self._progress.remove_task(task_id)
        self._emit_timeline("FAIL", "group", f"Failed to upload for {group.display_name}", error=group.error)

    def attach(self, events) -> None:
        events.on("group_start", self.on_group_start)
        events.on("file_complete", self.on_file_complete)
        events.on("file_fail", self.on_file_fail)
        events.on("duplicate_singleton", self.on_duplicate_singleton)
        events.on("group_complete", self.on_group_complete)
        events.on("group_fail", self.on_group_fail)

    def on_finish(self, groups: Sequence[PropertyGroup]) -> None:
        if self._started:
            self._progress.stop()
            self._started = False
        complete = sum(1 for g in groups if g.status == Status.COMPLETE)
        failed = sum(1 for g in groups if g.status == Status.ERROR)
        _echo(
            f"[bold]Finished[/bold] groups complete={complete} failed={failed} "
            f"files uploaded={self._stats['uploaded']} failed={self._stats['failed']}"
        )


def render_blog_result(result: BlogPairingResult) -> None:
    table = Table(title="Blog featured images")
    table.add_column("Post")
    table.add_column("Image")
    table.add_column("Result")
    for item in result.results:
        outcome = "[green]updated[/green]" if item.success else f"[red]failed[/red] [dim]{escape(item.error or '')}[/dim]"
        table.add_row(escape(item.post.title), escape(item.filename), outcome)
    console.print(table)
    _echo(f"[bold]Finished[/bold] updated={result.updated} failed={result.failed}")
