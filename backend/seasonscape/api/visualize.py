"""Background visualization jobs: start, poll, cancel."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from seasonscape.dependencies import get_coordinator, get_job_registry
from seasonscape.engine.calendar import InvalidRangeError, calculate_day_range
from seasonscape.engine.context import DayResult, VisualizationJob, VisualizationRequest
from seasonscape.engine.events import JobRegistry, JobStatus
from seasonscape.engine.pipeline import PipelineCoordinator
from seasonscape.models.requests import VisualizeRequest
from seasonscape.models.responses import DayResultResponse, JobStatusResponse, VisualizeStartResponse

logger = logging.getLogger(__name__)

router = APIRouter()

_JOB_FAILED_MESSAGE = "Visualization failed unexpectedly. Please try again."


def day_result_response(result: DayResult) -> DayResultResponse:
    return DayResultResponse(
        day_of_year=result.day_of_year,
        date=result.day.date,
        season=result.day.season,
        blooming=result.blooming,
        composite_url=result.composite_ref,
        image_url=result.image_ref,
        enhanced=result.enhanced,
        status=result.status.value,
        error=result.error,
        attempts=result.attempts,
        provider=result.provider,
        skipped_sprites=result.skipped_sprites,
    )


async def _run_job(coordinator: PipelineCoordinator, job: VisualizationJob) -> None:
    try:
        await coordinator.visualize(job.request, job)
    except Exception:
        # Background task: the job status is the only place left to report this
        logger.exception("Visualization job %s failed", job.job_id)
        job.error = _JOB_FAILED_MESSAGE
        job.tracker.emit(JobStatus.FAILED, message=_JOB_FAILED_MESSAGE)


def _get_job(registry: JobRegistry, job_id: str) -> VisualizationJob:
    job = registry.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Unknown job {job_id}")
    return job


def _status_response(job: VisualizationJob, since: int = 0) -> JobStatusResponse:
    snapshot = job.tracker.snapshot(since)
    response = JobStatusResponse(
        job_id=job.job_id,
        status=snapshot["status"],
        days=snapshot["days"],
        counts=job.tracker.counts(),
        events=snapshot["events"],
        error=job.error,
    )
    if job.result is not None:
        response.results = [day_result_response(d) for d in job.result.days]
        response.images = job.result.by_day()
    return response


@router.post("/visualize", response_model=VisualizeStartResponse, status_code=202)
async def start_visualization(
    body: VisualizeRequest,
    background_tasks: BackgroundTasks,
    coordinator: PipelineCoordinator = Depends(get_coordinator),
    registry: JobRegistry = Depends(get_job_registry),
) -> VisualizeStartResponse:
    try:
        calculate_day_range(body.start_day, body.end_day)
    except InvalidRangeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    request = VisualizationRequest(
        layout=body.layout,
        plants=body.plants,
        start_day=body.start_day,
        end_day=body.end_day,
        image_count=body.image_count,
        enhance=body.enhance,
        prompt=body.prompt,
        style=body.style,
        subject=body.subject,
    )
    job = VisualizationJob(request)
    registry.add(job.job_id, job)
    background_tasks.add_task(_run_job, coordinator, job)
    logger.info("Queued visualization job %s", job.job_id)
    return VisualizeStartResponse(job_id=job.job_id, status=JobStatus.QUEUED.value)


@router.get("/visualize/{job_id}", response_model=JobStatusResponse)
async def visualization_status(
    job_id: str,
    since: int = 0,
    registry: JobRegistry = Depends(get_job_registry),
) -> JobStatusResponse:
    return _status_response(_get_job(registry, job_id), since)


@router.post("/visualize/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_visualization(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> JobStatusResponse:
    job = _get_job(registry, job_id)
    if not job.tracker.done:
        logger.info("Cancelling visualization job %s", job_id)
        job.cancel()
    return _status_response(job)
