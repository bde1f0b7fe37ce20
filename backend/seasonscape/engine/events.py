"""Progress events for visualization jobs, shaped for a polling status endpoint."""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class JobStatus(str, enum.Enum):
    QUEUED = "queued"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TERMINAL = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


@dataclass(frozen=True)
class ProgressEvent:
    job_id: str
    status: JobStatus
    # None for job-level events
    day_of_year: int | None = None
    provider: str | None = None
    attempt: int = 0
    message: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class JobTracker:
    """Event log plus current per-day status for one job.

    Day chains run concurrently; a lock keeps the log consistent when events
    arrive from worker threads.
    """

    def __init__(self, job_id: str | None = None, listener: Callable[[ProgressEvent], None] | None = None) -> None:
        self.job_id = job_id or uuid.uuid4().hex
        self.events: list[ProgressEvent] = []
        self.day_status: dict[int, JobStatus] = {}
        self.status = JobStatus.QUEUED
        self._listener = listener
        self._lock = threading.Lock()

    def emit(
        self,
        status: JobStatus,
        day_of_year: int | None = None,
        *,
        provider: str | None = None,
        attempt: int = 0,
        message: str = "",
    ) -> ProgressEvent:
        event = ProgressEvent(
            job_id=self.job_id,
            status=status,
            day_of_year=day_of_year,
            provider=provider,
            attempt=attempt,
            message=message,
        )
        with self._lock:
            self.events.append(event)
            if day_of_year is None:
                self.status = status
            else:
                self.day_status[day_of_year] = status
        logger.debug("[%s] day=%s %s %s", self.job_id, day_of_year, status.value, message)
        if self._listener is not None:
            self._listener(event)
        return event

    def counts(self) -> dict[str, int]:
        with self._lock:
            statuses = list(self.day_status.values())
        return {s.value: statuses.count(s) for s in JobStatus}

    @property
    def done(self) -> bool:
        return self.status in _TERMINAL

    def snapshot(self, since: int = 0) -> dict[str, Any]:
        with self._lock:
            events = [e.to_dict() for e in self.events[since:]]
            days = {d: s.value for d, s in self.day_status.items()}
            status = self.status.value
        return {"job_id": self.job_id, "status": status, "days": days, "events": events}


class JobRegistry:
    """In-process job id -> tracker map; evicts the oldest finished jobs past `max_jobs`."""

    def __init__(self, max_jobs: int = 100) -> None:
        self.max_jobs = max_jobs
        self._jobs: dict[str, Any] = {}
        self._lock = threading.Lock()

    def add(self, job_id: str, job: Any) -> None:
        with self._lock:
            self._jobs[job_id] = job
            if len(self._jobs) > self.max_jobs:
                for key in list(self._jobs):
                    if len(self._jobs) <= self.max_jobs:
                        break
                    tracker = getattr(self._jobs[key], "tracker", None)
                    if tracker is not None and tracker.done:
                        del self._jobs[key]

    def get(self, job_id: str) -> Any | None:
        with self._lock:
            return self._jobs.get(job_id)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
