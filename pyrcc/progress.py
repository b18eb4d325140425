"""Progress reporting decoupled from the transfer algorithms.

Engines only talk to a ``ProgressSink``; rendering lives here. The rich
implementation keeps one transient status line per file, so nested
directory walks redraw cleanly instead of stacking bars.
"""

from typing import Optional, Protocol

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn

from .utils import format_progress

BAR_WIDTH = 30


class ProgressSink(Protocol):
    """Receiver of progress events from the transfer engines."""

    def status(self, message: str) -> None:
        """Show a transient status line such as "Pulling a to b"."""

    def report(self, done: int, total: int) -> None:
        """Report bytes done out of total for the current status line."""

    def clear_line(self) -> None:
        """Erase the current status line."""


class NullProgressSink:
    """Sink used when progress display is disabled."""

    def status(self, message: str) -> None:
        pass

    def report(self, done: int, total: int) -> None:
        pass

    def clear_line(self) -> None:
        pass

    def __enter__(self) -> "NullProgressSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        pass


class RichProgressSink:
    """Rich-based progress display.

    Shows a bounded-width bar followed by the size pair, e.g.
    "512 KB of 2.3 MB, 22%". The display is transient: cleared lines
    leave nothing behind on the terminal.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the progress display.

        Args:
            console: Console to render to (defaults to stderr)
        """
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=BAR_WIDTH),
            TextColumn("[cyan]{task.fields[sizes]}"),
            console=console or Console(stderr=True),
            transient=True,
            refresh_per_second=10,
        )
        self._task: Optional[TaskID] = None
        self._started = False

    def status(self, message: str) -> None:
        self.clear_line()
        self._task = self._progress.add_task(message, total=None, sizes="")

    def report(self, done: int, total: int) -> None:
        if self._task is None:
            self._task = self._progress.add_task("", total=None, sizes="")
        self._progress.update(
            self._task,
            completed=done,
            total=max(total, 1),
            sizes=format_progress(done, total),
        )

    def clear_line(self) -> None:
        if self._task is not None:
            self._progress.remove_task(self._task)
            self._task = None

    def __enter__(self) -> "RichProgressSink":
        self._progress.start()
        self._started = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.clear_line()
        if self._started:
            self._progress.stop()
            self._started = False


def make_progress_sink(show_progress: bool):
    """Create the sink matching the --progress flag.

    Returns:
        A context manager yielding a ProgressSink
    """
    if show_progress:
        return RichProgressSink()
    return NullProgressSink()
