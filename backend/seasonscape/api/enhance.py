"""POST /api/enhance — composite one day, then enhance it photorealistically."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from seasonscape.api.visualize import day_result_response
from seasonscape.dependencies import get_coordinator
from seasonscape.engine.pipeline import PipelineCoordinator
from seasonscape.models.requests import EnhanceRequest
from seasonscape.models.responses import DayResultResponse
from seasonscape.providers.errors import ProviderNotConfiguredError

router = APIRouter()

_NOT_CONFIGURED_MESSAGE = "Image enhancement is not configured on this server."


@router.post("/enhance", response_model=DayResultResponse)
async def enhance(
    body: EnhanceRequest,
    coordinator: PipelineCoordinator = Depends(get_coordinator),
) -> DayResultResponse:
    try:
        result = await coordinator.composite_then_enhance(
            body.layout,
            body.plants,
            body.day_of_year,
            body.prompt,
            style=body.style,
            subject=body.subject,
        )
    except ProviderNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=_NOT_CONFIGURED_MESSAGE) from e

    if result.composite_ref is not None and not result.enhanced:
        raise HTTPException(
            status_code=502,
            detail={"message": result.error, "compositeUrl": result.composite_ref},
        )
    return day_result_response(result)
