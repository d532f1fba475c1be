from __future__ import annotations

import sys
import threading
from typing import Any, Protocol

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.processing_result import ProcessingProgress, ProcessingResult

"""Progress stores and console progress display.

The pipeline only writes progress (set_progress); readers poll the store by
job id. Snapshots overwrite each other (latest wins), so a slow reader may
skip intermediate values but never sees an older one after a newer one.

Retention belongs to whoever owns the store: nothing here evicts on its own.

Console display uses a single tqdm bar (TTY only) to avoid ANSI control
sequence spam in CI logs.
"""

__all__ = [
    "ProgressStore",
    "InMemoryProgressStore",
    "ProgressBar",
    "TqdmProgressStore",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressStore(Protocol):
    """Per-job progress/result slots keyed by job id."""

    def set_progress(self, job_id: str, progress: ProcessingProgress) -> None: ...

    def get_progress(self, job_id: str) -> ProcessingProgress | None: ...

    def set_result(self, job_id: str, result: ProcessingResult) -> None: ...

    def get_result(self, job_id: str) -> ProcessingResult | None: ...

    def evict(self, job_id: str) -> None: ...


class InMemoryProgressStore:
    """Thread-safe in-process store. One instance per owner (no module-level singleton)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._progress: dict[str, ProcessingProgress] = {}
        self._results: dict[str, ProcessingResult] = {}

    def set_progress(self, job_id: str, progress: ProcessingProgress) -> None:
        with self._lock:
            self._progress[job_id] = progress

    def get_progress(self, job_id: str) -> ProcessingProgress | None:
        with self._lock:
            return self._progress.get(job_id)

    def set_result(self, job_id: str, result: ProcessingResult) -> None:
        with self._lock:
            # 終端結果は不変: 二度目の書き込みは無視
            self._results.setdefault(job_id, result)

    def get_result(self, job_id: str) -> ProcessingResult | None:
        with self._lock:
            return self._results.get(job_id)

    def evict(self, job_id: str) -> None:
        with self._lock:
            self._progress.pop(job_id, None)
            self._results.pop(job_id, None)

    def job_ids(self) -> list[str]:
        with self._lock:
            return list(self._progress)

    def __len__(self) -> int:
        with self._lock:
            return len(self._progress)


class ProgressBar:
    """Single tqdm bar (0-100) mirroring one job's stage progress.

    In non-TTY environments (CI) the bar is disabled.
    """

    def __init__(self, description: str = "Processing") -> None:
        self.description = description
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=description,
                unit="%",
                disable=False,
                leave=True,
                position=0,
                ncols=80,  # Standard width for consistency
                ascii=True,  # ASCII chars for better compatibility
            )
        else:
            self.pbar = None

    def update(self, progress: ProcessingProgress) -> None:
        """Move the bar to ``progress.progress`` and show the stage."""
        if self.enabled and self.pbar is not None:
            self.pbar.n = progress.progress
            label = progress.stage.value
            if progress.sheet_name:
                label = f"{label}:{progress.sheet_name}"
            self.pbar.set_description(f"{self.description} ({label})")
            self.pbar.refresh()

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressBar:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class TqdmProgressStore(InMemoryProgressStore):
    """In-memory store that also drives a console ProgressBar."""

    def __init__(self, bar: ProgressBar) -> None:
        super().__init__()
        self.bar = bar

    def set_progress(self, job_id: str, progress: ProcessingProgress) -> None:
        super().set_progress(job_id, progress)
        self.bar.update(progress)
