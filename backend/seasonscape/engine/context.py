"""Visualization request, per-day results and the cancellable job handle."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from seasonscape.engine.calendar import DayRange, SelectedDay, sort_days_in_range
from seasonscape.engine.events import JobStatus, JobTracker, ProgressEvent
from seasonscape.models.plants import LayoutEntry, PlantRecord


@dataclass
class VisualizationRequest:
    layout: list[LayoutEntry]
    plants: list[PlantRecord]
    start_day: int
    end_day: int
    # None = pick by range length
    image_count: int | None = None
    # None = PipelineConfig.enhance
    enhance: bool | None = None
    prompt: str | None = None
    style: str = "photorealistic"
    subject: str = "garden"


@dataclass
class DayResult:
    """Outcome of one day's bloom -> composite -> enhance chain."""

    day: SelectedDay
    blooming: list[str] = field(default_factory=list)
    composite_ref: str | None = None
    # Enhanced image when enhancement succeeded, otherwise the composite
    image_ref: str | None = None
    enhanced: bool = False
    status: JobStatus = JobStatus.QUEUED
    # User-safe message; technical detail only goes to the log
    error: str | None = None
    attempts: int = 0
    provider: str | None = None
    skipped_sprites: list[str] = field(default_factory=list)

    @property
    def day_of_year(self) -> int:
        return self.day.day_of_year


@dataclass
class VisualizationResult:
    job_id: str
    range: DayRange
    days: list[DayResult] = field(default_factory=list)
    status: JobStatus = JobStatus.COMPLETED

    def by_day(self) -> dict[int, str | None]:
        """day_of_year -> image reference, in the range's forward order."""
        lookup = {d.day_of_year: d.image_ref for d in self.days}
        return {day: lookup[day] for day in sort_days_in_range(lookup, self.range)}


class VisualizationJob:
    """Handle for one running visualization.

    cancel() stops day chains that have not started and cancels in-flight
    provider calls; composites already produced are kept in the result.
    """

    def __init__(
        self,
        request: VisualizationRequest,
        job_id: str | None = None,
        listener: Callable[[ProgressEvent], None] | None = None,
    ) -> None:
        self.request = request
        self.tracker = JobTracker(job_id, listener)
        self.result: VisualizationResult | None = None
        self.error: str | None = None
        self._cancel_event = threading.Event()
        self._inflight: set[asyncio.Future] = set()

    @property
    def job_id(self) -> str:
        return self.tracker.job_id

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()
        for task in list(self._inflight):
            task.cancel()

    def track(self, task: asyncio.Future) -> None:
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
