"""FastAPI dependency injection."""

from __future__ import annotations

from functools import lru_cache

from seasonscape.config import Settings, settings
from seasonscape.engine.compositor import SpriteCompositor
from seasonscape.engine.config import PipelineConfig
from seasonscape.engine.events import JobRegistry
from seasonscape.engine.pipeline import PipelineCoordinator
from seasonscape.engine.sprites import FileSpriteStore
from seasonscape.providers.chain import build_provider_chain
from seasonscape.providers.orchestrator import ProviderOrchestrator
from seasonscape.providers.store import LocalImageStore
from seasonscape.utils.cache import TTLCache


def get_settings() -> Settings:
    return settings


@lru_cache
def get_image_store() -> LocalImageStore:
    return LocalImageStore(settings.output_dir, settings.output_url_prefix)


@lru_cache
def get_orchestrator() -> ProviderOrchestrator:
    return ProviderOrchestrator(
        build_provider_chain(settings),
        get_image_store(),
        timeout=settings.provider_timeout_s,
    )


@lru_cache
def get_coordinator() -> PipelineCoordinator:
    return PipelineCoordinator(
        SpriteCompositor(FileSpriteStore(settings.sprite_dir)),
        get_image_store(),
        TTLCache(settings.cache_ttl_s, max_entries=settings.cache_max_entries),
        orchestrator=get_orchestrator(),
        config=PipelineConfig(max_concurrent_days=settings.max_concurrent_days),
    )


@lru_cache
def get_job_registry() -> JobRegistry:
    return JobRegistry()
