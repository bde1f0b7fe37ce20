"""Health check."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from seasonscape import __version__
from seasonscape.dependencies import get_orchestrator
from seasonscape.models.responses import HealthResponse
from seasonscape.providers.orchestrator import ProviderOrchestrator

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(orchestrator: ProviderOrchestrator = Depends(get_orchestrator)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        providers_configured=[a.provider_id for a in orchestrator.configured],
    )
