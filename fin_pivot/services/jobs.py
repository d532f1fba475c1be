from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from ..models.config_models import PipelineConfig
from ..models.processing_result import ProcessingResult
from .orchestrator import process_workbook
from .progress import InMemoryProgressStore, ProgressStore

"""Background execution of pipeline jobs.

Each submitted workbook runs as its own job on a worker thread with isolated
state; the caller polls the shared ProgressStore by job id and receives the
terminal ProcessingResult through a Future.
"""

__all__ = [
    "JobRunner",
]

logger = logging.getLogger(__name__)


class JobRunner:
    """Runs jobs on a thread pool, writing progress to an injected store.

    The runner never evicts store entries; the store's owner decides retention.
    """

    def __init__(
        self,
        store: ProgressStore | None = None,
        *,
        config: PipelineConfig | None = None,
        max_workers: int = 4,
    ) -> None:
        self.store: ProgressStore = store if store is not None else InMemoryProgressStore()
        self.config = config or PipelineConfig()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fin-pivot")
        self._cancel_events: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def submit(self, source: bytes | Path, job_id: str | None = None) -> tuple[str, Future[ProcessingResult]]:
        """Queue one workbook. Returns the job id (generated when omitted) and its Future.

        Raises:
            ValueError: If ``job_id`` is already running, or its finished result is
                still held by the store (the owner must ``evict`` it first)
        """
        job_id = job_id or str(uuid.uuid4())
        event = threading.Event()
        with self._lock:
            if job_id in self._cancel_events:
                raise ValueError(f"job {job_id} is already running")
            if self.store.get_result(job_id) is not None:
                raise ValueError(f"job {job_id} already has a result; evict it before reusing the id")
            self._cancel_events[job_id] = event
        logger.debug("job=%s submitted", job_id)
        future = self._executor.submit(self._run, source, job_id, event)
        return job_id, future

    def _run(self, source: bytes | Path, job_id: str, event: threading.Event) -> ProcessingResult:
        try:
            return process_workbook(
                source,
                job_id,
                config=self.config,
                progress_store=self.store,
                cancel_event=event,
            )
        finally:
            with self._lock:
                self._cancel_events.pop(job_id, None)

    def cancel(self, job_id: str) -> bool:
        """Request cooperative cancellation. False if the job is not running."""
        with self._lock:
            event = self._cancel_events.get(job_id)
        if event is None:
            return False
        event.set()
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> JobRunner:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown()
