"""Progress display for chunked uploads."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TaskProgressColumn, TextColumn


class ConsoleProgressBar:
    """Renders upload progress fractions as a rich progress bar on stderr.

    Usable as a progress callback; use it as a context manager so the bar is
    torn down even when the upload aborts.
    """

    def __init__(self, description: str, console: Optional[Console] = None) -> None:
        self.description = description
        self._progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            console=console or Console(stderr=True),
        )
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "ConsoleProgressBar":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __call__(self, fraction: float) -> None:
        if self._task is None:
            self._progress.start()
            self._task = self._progress.add_task(self.description, total=1.0)
        self._progress.update(self._task, completed=fraction)
        if fraction >= 1.0:
            self.close()

    def close(self) -> None:
        if self._task is not None:
            self._progress.stop()
