"""Terminal rendering of crawl progress events with Rich."""

from __future__ import annotations

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ..engine.events import CrawlProgress, ProgressKind


class RichProgressSink:
    """ProgressSink drawing a page bar plus the latest status line.

    Falls back to silent mode when the console is not a terminal or another
    Live display already owns it; events are still counted and the last
    message is kept so callers can report it after a failure.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self.console = console or Console()
        if enabled and not self.console.is_terminal:
            self.enabled = False
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.last_message: str | None = None
        self.rotations = 0
        self.retry_waits = 0

    def __enter__(self) -> "RichProgressSink":
        if not self.enabled:
            return self
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<14}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("[dim]{task.fields[key]}", justify="right"),
            TextColumn("{task.fields[status]}", justify="left"),
            console=self.console,
            transient=True,
            refresh_per_second=8,
            expand=True,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return self
        self._task_id = self._progress.add_task(
            "crawl", total=None, label="pages", key="key 1", status="Preparing request..."
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._progress is not None:
            try:
                self._progress.stop()
            finally:
                self._progress.__exit__(exc_type, exc, tb)
            self._progress = None
            self._task_id = None

    def emit(self, progress: CrawlProgress) -> None:
        self.last_message = progress.status_message
        if progress.kind is ProgressKind.ROTATION:
            self.rotations += 1
        elif progress.kind is ProgressKind.RETRY_WAIT:
            self.retry_waits += 1
        if self._progress is None or self._task_id is None:
            return
        label = "pages"
        if progress.current_issuer_index is not None and progress.total_issuers:
            label = f"issuer {progress.current_issuer_index + 1}/{progress.total_issuers}"
        status = progress.status_message
        if len(status) > 70:
            status = status[:67] + "..."
        total = progress.total_pages or None
        self._progress.update(
            self._task_id,
            total=total,
            completed=progress.current_page,
            label=label,
            key=f"key {progress.active_credential_index + 1}",
            status=status,
        )


__all__ = ["RichProgressSink"]
