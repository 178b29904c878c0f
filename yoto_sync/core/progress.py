"""
Rich progress display for the transfer stages of a sync run.

Fetching and publishing each get one bar. The bar counts outcomes per item
(fetched, failed, already on Yoto) and shows them next to the percentage:

    Uploading   ✓ 3  ✗ 0  ⊘ 1   ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ 100%

Planning and the commit are single requests and get no bar.
"""

from collections import Counter
from typing import Optional

from rich import get_console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.theme import Theme


YOTO_THEME = Theme({
    "bar.back": "grey30",
    "bar.complete": "rgb(255,199,44)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(255,199,44)",
    "progress.percentage": "bold white",
})

OK = "ok"
FAILED = "failed"
REUSED = "reused"

# Marker and colour per outcome; REUSED is only drawn once it happened
OUTCOME_MARKERS = {
    OK: ("✓", "green"),
    FAILED: ("✗", "red"),
    REUSED: ("⊘", "yellow"),
}


class TransferProgress:
    """One progress bar over a batch of playlist items."""

    def __init__(self, total: int, label: str):
        self.total = total
        self.label = label
        self.outcomes: Counter = Counter()

        self._console = get_console()
        self._progress = Progress(
            TextColumn("{task.description:<11}", style="white"),
            TextColumn("{task.fields[tally]}"),
            BarColumn(bar_width=None),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            console=self._console,
            expand=True,
        )
        self._task: Optional[TaskID] = None

    @classmethod
    def for_fetch(cls, total: int) -> "TransferProgress":
        return cls(total, "Downloading")

    @classmethod
    def for_publish(cls, total: int) -> "TransferProgress":
        return cls(total, "Uploading")

    @property
    def running(self) -> bool:
        return self._task is not None

    def tally(self) -> str:
        shown = []
        for outcome, (marker, colour) in OUTCOME_MARKERS.items():
            if outcome == REUSED and not self.outcomes[REUSED]:
                continue
            shown.append(f"[{colour}]{marker} {self.outcomes[outcome]}[/{colour}]")
        return "  ".join(shown)

    def start(self) -> None:
        if self.running:
            return
        self._console.push_theme(YOTO_THEME)
        self._progress.start()
        self._task = self._progress.add_task(self.label, total=self.total, tally=self.tally())

    def stop(self) -> None:
        if not self.running:
            return
        self._progress.stop()
        self._console.pop_theme()
        self._task = None

    def record(self, outcome: str) -> None:
        """Count one finished item and redraw."""
        if outcome not in OUTCOME_MARKERS:
            raise ValueError(f"Unknown transfer outcome: {outcome}")
        self.outcomes[outcome] += 1
        if self.running:
            self._progress.update(
                self._task,
                completed=sum(self.outcomes.values()),
                tally=self.tally(),
            )

    def __enter__(self) -> "TransferProgress":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


__all__ = ["YOTO_THEME", "OK", "FAILED", "REUSED", "TransferProgress"]
