"""In-process registry of pipeline run progress.

Each upload runs the pipeline on a background thread and writes its progress
here; the upload component polls it with a dcc.Interval.
"""

import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from uuid import uuid4

# Finished runs nobody polled for this long are dropped on the next start()
FINISHED_RUN_TTL_SECONDS = 3600


class RunState(str, Enum):
    """Lifecycle of a tracked run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RunStatus:
    """Snapshot of one run.

    Attributes:
        run_id: Tracker-assigned identifier.
        state: Current lifecycle state.
        percent: Last reported progress percentage.
        stage: Last reported stage label.
        error: Failure message when state is FAILED.
        report_id: ID of the persisted report when state is COMPLETED.
        audio_id: ID of the audio upload when state is COMPLETED.
        filename: Original name of the uploaded file.
        finished_at: time.monotonic() when the run completed or failed.
    """

    run_id: str
    state: RunState = RunState.RUNNING
    percent: int = 0
    stage: str = ""
    error: str | None = None
    report_id: str | None = None
    audio_id: str | None = None
    filename: str | None = None
    finished_at: float | None = None


class RunTracker:
    """Thread-safe map of run id to RunStatus."""

    def __init__(self) -> None:
        self._runs: dict[str, RunStatus] = {}
        self._lock = threading.Lock()

    def start(self, filename: str | None = None) -> str:
        run_id = str(uuid4())
        with self._lock:
            self._prune_finished()
            self._runs[run_id] = RunStatus(run_id=run_id, filename=filename)
        return run_id

    def update(self, run_id: str, percent: int, stage: str) -> None:
        with self._lock:
            status = self._runs[run_id]
            self._runs[run_id] = replace(status, percent=percent, stage=stage)

    def complete(self, run_id: str, report_id: str, audio_id: str) -> None:
        with self._lock:
            status = self._runs[run_id]
            self._runs[run_id] = replace(
                status,
                state=RunState.COMPLETED,
                report_id=report_id,
                audio_id=audio_id,
                finished_at=time.monotonic(),
            )

    def fail(self, run_id: str, error: str) -> None:
        with self._lock:
            status = self._runs[run_id]
            self._runs[run_id] = replace(
                status,
                state=RunState.FAILED,
                error=error,
                finished_at=time.monotonic(),
            )

    def get(self, run_id: str) -> RunStatus | None:
        with self._lock:
            return self._runs.get(run_id)

    def discard(self, run_id: str) -> None:
        """Forget a finished run once the UI has shown its outcome."""
        with self._lock:
            self._runs.pop(run_id, None)

    def _prune_finished(self) -> None:
        # Caller holds the lock
        cutoff = time.monotonic() - FINISHED_RUN_TTL_SECONDS
        stale = [
            run_id
            for run_id, status in self._runs.items()
            if status.finished_at is not None and status.finished_at < cutoff
        ]
        for run_id in stale:
            del self._runs[run_id]


run_tracker = RunTracker()
