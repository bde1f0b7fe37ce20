"""Builds the configured provider chain from Settings."""

from __future__ import annotations

import logging

import httpx

from seasonscape.config import Settings
from seasonscape.engine.config import CompositorConfig
from seasonscape.providers.base import ProviderAdapter
from seasonscape.providers.gemini import GeminiAdapter
from seasonscape.providers.huggingface import HF_POLICY, HuggingFaceAdapter
from seasonscape.providers.retry import RetryPolicy
from seasonscape.providers.runware import RunwareAdapter

logger = logging.getLogger(__name__)


def build_provider_chain(
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    canvas: CompositorConfig | None = None,
) -> list[ProviderAdapter]:
    """Adapters in `settings.provider_chain` order. Gemini contributes one adapter per model.

    Unconfigured providers are still built; the orchestrator skips them.
    """
    canvas = canvas or CompositorConfig()
    policy = RetryPolicy(max_attempts=settings.max_attempts_per_provider, jitter=settings.retry_jitter)
    timeout = settings.provider_timeout_s
    chain: list[ProviderAdapter] = []

    for name in settings.provider_chain:
        key = name.strip().lower()
        if key == "gemini":
            chain.extend(
                GeminiAdapter(settings.gemini_api_key, model, client=client, policy=policy, timeout=timeout)
                for model in settings.gemini_models
            )
        elif key == "runware":
            chain.append(
                RunwareAdapter(
                    settings.runware_api_key,
                    settings.runware_model,
                    width=canvas.canvas_width,
                    height=canvas.canvas_height,
                    strength=settings.reference_strength,
                    client=client,
                    policy=policy,
                    timeout=timeout,
                )
            )
        elif key == "huggingface":
            chain.append(
                HuggingFaceAdapter(
                    settings.huggingface_api_key,
                    settings.huggingface_model,
                    client=client,
                    policy=RetryPolicy(
                        max_attempts=settings.max_attempts_per_provider,
                        base_delays=HF_POLICY.base_delays,
                        jitter=settings.retry_jitter,
                    ),
                    timeout=timeout,
                )
            )
        else:
            logger.warning("Unknown provider %r in provider_chain, ignoring", name)

    configured = [a.provider_id for a in chain if a.is_configured]
    logger.info("Provider chain: %s (configured: %s)", [a.provider_id for a in chain], configured or "none")
    return chain
