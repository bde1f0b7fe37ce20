"""Pipeline coordinator — days -> blooms -> composite -> optional enhancement.

Every selected day runs as an independent chain under a semaphore. A failure
in one chain never aborts its siblings: a chain whose enhancement is exhausted
falls back to its composite, a chain whose composite fails is marked failed.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from collections.abc import Callable, Sequence

from seasonscape.engine.bloom import bloom_status, get_plants_blooming_on_day, is_blooming
from seasonscape.engine.calendar import (
    SelectedDay,
    calculate_day_range,
    day_to_date_info,
    select_days_for_images,
)
from seasonscape.engine.compositor import CanvasSizeError, CompositeCanvas, SpriteCompositor
from seasonscape.engine.config import PipelineConfig
from seasonscape.engine.context import (
    DayResult,
    VisualizationJob,
    VisualizationRequest,
    VisualizationResult,
)
from seasonscape.engine.events import JobStatus, JobTracker
from seasonscape.models.plants import LayoutEntry, PlantPosition, PlantRecord
from seasonscape.providers.errors import ProviderNotConfiguredError
from seasonscape.providers.orchestrator import ProviderOrchestrator
from seasonscape.providers.prompts import SceneDescription
from seasonscape.providers.store import LocalImageStore
from seasonscape.utils.cache import TTLCache

logger = logging.getLogger(__name__)

SpriteResolver = Callable[[PlantRecord, str, bool], "str | None"]

COMPOSITE_FAILED_MESSAGE = "Could not build the garden preview for this day."
NOT_CONFIGURED_MESSAGE = "Photorealistic enhancement is not configured; showing the garden preview."
ENHANCE_FAILED_MESSAGE = "Photorealistic enhancement failed; showing the garden preview."


def default_sprite_resolver(plant: PlantRecord, season: str, in_bloom: bool) -> str | None:
    """Pick a sprite by season, preferring the bloom/foliage variant."""
    preferred = f"{season}-bloom" if in_bloom else f"{season}-foliage"
    for key in (preferred, season, "default"):
        ref = plant.sprites.get(key)
        if ref:
            return ref
    return None


def placement_fingerprint(positions: Sequence[PlantPosition]) -> str:
    payload = [[p.sprite_asset_ref, p.grid_x, p.grid_y, p.scale] for p in positions]
    return hashlib.sha256(json.dumps(payload).encode()).hexdigest()


class PipelineCoordinator:
    def __init__(
        self,
        compositor: SpriteCompositor,
        store: LocalImageStore,
        cache: TTLCache,
        orchestrator: ProviderOrchestrator | None = None,
        config: PipelineConfig | None = None,
        sprite_resolver: SpriteResolver = default_sprite_resolver,
    ) -> None:
        self.compositor = compositor
        self.store = store
        self.cache = cache
        self.orchestrator = orchestrator
        self.config = config or PipelineConfig()
        self.sprite_resolver = sprite_resolver

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan_day(
        self,
        day_of_year: int,
        layout: Sequence[LayoutEntry],
        plants: Sequence[PlantRecord],
    ) -> tuple[SelectedDay, list[str], list[PlantPosition]]:
        """Resolve the day's date info, blooming names and far-to-near positions."""
        year = self.config.year
        day = day_to_date_info(day_of_year, year)
        catalog = {p.id: p for p in plants}
        # Only plants placed in this garden can be in flower in its picture
        blooming = get_plants_blooming_on_day(layout_plants(layout, plants), day_of_year, year)

        positions: list[PlantPosition] = []
        for entry in layout:
            plant = catalog.get(entry.plant_ref)
            if plant is None:
                logger.warning("Layout references unknown plant %s", entry.plant_ref)
                continue
            ref = self.sprite_resolver(plant, day.season, bool(is_blooming(plant, day_of_year, year)))
            if ref is None:
                logger.debug("No %s sprite for %s", day.season, plant.display_name)
                continue
            positions.append(
                PlantPosition(
                    sprite_asset_ref=ref,
                    grid_x=entry.grid_x,
                    grid_y=entry.grid_y,
                    scale=entry.scale,
                    label=plant.display_name,
                )
            )

        # Far-to-near so nearer plants draw on top; sort is stable
        positions.sort(key=lambda p: p.grid_y)
        return day, blooming, positions

    def composite(self, positions: Sequence[PlantPosition], subject: str) -> tuple[str, CompositeCanvas]:
        """Composite and store, reusing a cached result for identical placements."""
        key = placement_fingerprint(positions)
        return self.cache.get_or_set(key, lambda: self._render(positions, subject))

    def _render(self, positions: Sequence[PlantPosition], subject: str) -> tuple[str, CompositeCanvas]:
        canvas = self.compositor.composite_garden(positions)
        ref = self.store.save(canvas.png, subject, "composite")
        logger.debug("Composited %d sprites into %s", len(canvas.placements), ref)
        return ref, canvas

    # ------------------------------------------------------------------
    # Multi-day visualization
    # ------------------------------------------------------------------

    async def visualize(
        self,
        request: VisualizationRequest,
        job: VisualizationJob | None = None,
    ) -> VisualizationResult:
        """Run every selected day's chain and collect one result per day.

        InvalidRangeError propagates before any work starts. Results come back
        in selection order; use VisualizationResult.by_day() for the mapping.
        """
        job = job or VisualizationJob(request)
        tracker = job.tracker

        day_range = calculate_day_range(request.start_day, request.end_day)
        days = select_days_for_images(day_range, request.image_count)
        logger.info(
            "Job %s: %d days selected from %d..%d (%d total)",
            job.job_id, len(days), day_range.start_day, day_range.end_day, day_range.total_days,
        )
        for d in days:
            tracker.emit(JobStatus.QUEUED, d)

        enhance = self.config.enhance if request.enhance is None else request.enhance
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrent_days))
        tracker.emit(JobStatus.GENERATING, message=f"{len(days)} days")

        outcomes = await asyncio.gather(
            *(self._run_day(job, d, semaphore, enhance) for d in days),
            return_exceptions=True,
        )

        results: list[DayResult] = []
        for d, outcome in zip(days, outcomes):
            if isinstance(outcome, DayResult):
                results.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error("Job %s day %d crashed", job.job_id, d, exc_info=outcome)
            failed = DayResult(day=day_to_date_info(d, self.config.year), error=COMPOSITE_FAILED_MESSAGE)
            results.append(self._mark(failed, tracker, JobStatus.FAILED, COMPOSITE_FAILED_MESSAGE))

        if job.cancelled:
            status = JobStatus.CANCELLED
        elif results and all(r.status is JobStatus.FAILED for r in results):
            status = JobStatus.FAILED
        else:
            status = JobStatus.COMPLETED

        result = VisualizationResult(job_id=job.job_id, range=day_range, days=results, status=status)
        job.result = result
        enhanced = sum(r.enhanced for r in results)
        tracker.emit(status, message=f"{enhanced}/{len(results)} days enhanced")
        logger.info("Job %s %s: %d/%d days enhanced", job.job_id, status.value, enhanced, len(results))
        return result

    async def _run_day(
        self,
        job: VisualizationJob,
        day_of_year: int,
        semaphore: asyncio.Semaphore,
        enhance: bool,
    ) -> DayResult:
        request = job.request
        tracker = job.tracker
        day, blooming, positions = self.plan_day(day_of_year, request.layout, request.plants)
        result = DayResult(day=day, blooming=blooming)

        async with semaphore:
            if job.cancelled:
                return self._mark(result, tracker, JobStatus.CANCELLED, "cancelled before start")

            tracker.emit(JobStatus.GENERATING, day_of_year, message="compositing")
            canvas = await self._build_composite(result, positions, request.subject, tracker)
            if canvas is None:
                return result

            if not enhance or self.orchestrator is None:
                return self._mark(result, tracker, JobStatus.COMPLETED, "composite ready")
            if job.cancelled:
                return self._mark(result, tracker, JobStatus.CANCELLED, "cancelled before enhancement")

            task = asyncio.ensure_future(self._enhance(result, canvas.png, request, tracker))
            job.track(task)
            try:
                await task
            except asyncio.CancelledError:
                if not job.cancelled:
                    raise
                return self._mark(result, tracker, JobStatus.CANCELLED, "enhancement cancelled")

        return result

    # ------------------------------------------------------------------
    # Single-day two-step flow
    # ------------------------------------------------------------------

    async def composite_then_enhance(
        self,
        layout: Sequence[LayoutEntry],
        plants: Sequence[PlantRecord],
        day_of_year: int,
        prompt: str | None = None,
        *,
        style: str = "photorealistic",
        subject: str = "garden",
    ) -> DayResult:
        """Composite one day, then hand it to the provider chain as a reference.

        Raises ProviderNotConfiguredError before compositing when no provider
        can take a reference image. Exhausted providers leave the composite as
        the result with enhanced=False and a user-safe error.
        """
        if self.orchestrator is None:
            raise ProviderNotConfiguredError("No image provider is configured")
        self.orchestrator.chain_for(needs_reference=True)

        tracker = JobTracker()
        day, blooming, positions = self.plan_day(day_of_year, layout, plants)
        result = DayResult(day=day, blooming=blooming)
        tracker.emit(JobStatus.GENERATING, day_of_year, message="compositing")
        canvas = await self._build_composite(result, positions, subject, tracker)
        if canvas is None:
            return result

        request = VisualizationRequest(
            layout=list(layout),
            plants=list(plants),
            start_day=day_of_year,
            end_day=day_of_year,
            prompt=prompt,
            style=style,
            subject=subject,
        )
        await self._enhance(result, canvas.png, request, tracker)
        return result

    # ------------------------------------------------------------------
    # Chain steps
    # ------------------------------------------------------------------

    async def _build_composite(
        self,
        result: DayResult,
        positions: list[PlantPosition],
        subject: str,
        tracker: JobTracker,
    ) -> CompositeCanvas | None:
        try:
            ref, canvas = await asyncio.to_thread(self.composite, positions, subject)
        except (CanvasSizeError, OSError) as e:
            logger.warning("Composite failed for day %d: %s", result.day_of_year, e)
            result.error = COMPOSITE_FAILED_MESSAGE
            self._mark(result, tracker, JobStatus.FAILED, str(e))
            return None

        result.composite_ref = ref
        result.image_ref = ref
        result.skipped_sprites = list(canvas.skipped)
        return canvas

    async def _enhance(
        self,
        result: DayResult,
        composite_png: bytes,
        request: VisualizationRequest,
        tracker: JobTracker,
    ) -> None:
        assert self.orchestrator is not None
        day_of_year = result.day_of_year
        year = self.config.year
        placed = layout_plants(request.layout, request.plants)
        scene = SceneDescription.from_day(
            result.day,
            blooming=result.blooming,
            plants=[p.display_name for p in placed],
            plant_states=[f"{p.display_name}: {bloom_status(p, day_of_year, year)}" for p in placed],
            style=request.style,
        )

        def _on_attempt(provider_id: str, attempt: int) -> None:
            tracker.emit(
                JobStatus.GENERATING, day_of_year, provider=provider_id, attempt=attempt, message="enhancing"
            )

        try:
            outcome = await self.orchestrator.generate_from_reference(
                request.prompt,
                composite_png,
                scene=scene,
                subject=request.subject,
                on_attempt=_on_attempt,
            )
        except ProviderNotConfiguredError as e:
            logger.warning("Day %d not enhanced: %s", day_of_year, e)
            result.error = NOT_CONFIGURED_MESSAGE
            self._mark(result, tracker, JobStatus.COMPLETED, "enhancement not configured")
            return
        except Exception:
            # The composite is already stored; it stays the day's image
            logger.exception("Enhancement crashed for day %d", day_of_year)
            result.error = ENHANCE_FAILED_MESSAGE
            self._mark(result, tracker, JobStatus.COMPLETED, "enhancement failed")
            return

        result.attempts = outcome.attempts
        if outcome.succeeded:
            result.image_ref = outcome.reference
            result.enhanced = True
            result.provider = outcome.provider_id
            self._mark(result, tracker, JobStatus.COMPLETED, f"enhanced via {outcome.provider_id}")
        else:
            # Degrade to the composite; the user-safe message rides along
            result.error = outcome.user_message
            self._mark(result, tracker, JobStatus.COMPLETED, outcome.user_message or "enhancement failed")

    @staticmethod
    def _mark(result: DayResult, tracker: JobTracker, status: JobStatus, message: str) -> DayResult:
        result.status = status
        tracker.emit(status, result.day_of_year, attempt=result.attempts, message=message)
        return result


def layout_plants(layout: Sequence[LayoutEntry], plants: Sequence[PlantRecord]) -> list[PlantRecord]:
    """Catalog records placed in the layout, first occurrence order, no repeats."""
    catalog = {p.id: p for p in plants}
    placed: list[PlantRecord] = []
    for entry in layout:
        plant = catalog.get(entry.plant_ref)
        if plant is not None and all(p.id != plant.id for p in placed):
            placed.append(plant)
    return placed
