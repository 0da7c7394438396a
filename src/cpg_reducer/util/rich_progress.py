from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


def _stderr_console() -> Console:
    # stdout carries the serialized graphs.
    return Console(stderr=True)


class RunProgress:
    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._enabled = bool(enabled)
        self._console = console or _stderr_console()
        self._progress: Optional[Progress] = None
        self._task: Optional[Any] = None
        self._started = False
        if self._enabled:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("{task.description}"),
                TextColumn("{task.completed} graph(s)"),
                TextColumn("{task.fields[current]}", justify="left"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> RunProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._task = self._progress.add_task("Reducing", total=None, current="")
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            self._progress.stop()
            self._started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def completed(self) -> int:
        if not self._progress or self._task is None:
            return 0
        return int(self._progress.tasks[0].completed)

    def start_graph(self, name: str) -> None:
        if not self._enabled or not self._progress or self._task is None:
            return
        self._progress.update(self._task, current=name)

    def finish_graph(self) -> None:
        if not self._enabled or not self._progress or self._task is None:
            return
        self._progress.update(self._task, advance=1, current="")


def render_run_summary_table(
    *,
    enabled: bool,
    status: str,
    totals: Dict[str, int],
    node_type: str,
    source: str,
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title="Reduction Summary", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Status", status)
    table.add_row("Input", source)
    table.add_row("Node type", node_type)
    table.add_row("Graphs", str(totals.get("graphs", 0)))
    table.add_row("Nodes in", str(totals.get("nodes_in", 0)))
    table.add_row("Edges in", str(totals.get("edges_in", 0)))
    table.add_row("Intra-file edges removed", str(totals.get("edges_removed", 0)))
    table.add_row("Nodes removed", str(totals.get("nodes_removed", 0)))
    table.add_row("Isolated nodes kept", str(totals.get("isolated_kept", 0)))
    table.add_row("Nodes out", str(totals.get("nodes_out", 0)))
    table.add_row("Links out", str(totals.get("links_out", 0)))
    (console or _stderr_console()).print(table)
