"""Rich-based progress reporter for terminal output."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


if TYPE_CHECKING:
    from types import TracebackType

    from rich.console import Console

    from clipcache.core.ports import ProgressCallback


class RichProgressReporter:
    """Progress reporter drawing a download bar per cached asset.

    Origins that do not announce a size get an indeterminate bar
    (total of 0 is passed to rich as None).

    Example:
        with RichProgressReporter() as reporter:
            result = orchestrator.retrieve(request, progress=reporter)
    """

    def __init__(self, console: Console | None = None) -> None:
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._tasks: dict[str, TaskID] = {}
        self._started = False

    def __enter__(self) -> RichProgressReporter:
        """Start the progress display."""
        self._progress.start()
        self._started = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop the progress display."""
        self._progress.stop()
        self._started = False

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Add a bar for one download and return its update callback."""
        if not self._started:
            self._progress.start()
            self._started = True

        task_id = self._progress.add_task(name, total=total or None)
        self._tasks[name] = task_id

        def callback(downloaded: int, reported_total: int) -> None:
            self._progress.update(
                task_id, completed=downloaded, total=reported_total or None
            )

        return callback

    def finish_task(self, name: str) -> None:
        """Stop the bar for a download and drop it from the registry."""
        task_id = self._tasks.pop(name, None)
        if task_id is None:
            return
        completed = next(
            task.completed for task in self._progress.tasks if task.id == task_id
        )
        # Unknown totals finish at whatever was received
        self._progress.update(task_id, total=completed, completed=completed)
        self._progress.stop_task(task_id)
