"""Ordered fallback across image providers.

A GenerationJob walks the provider chain in order. Each provider gets up to
its policy's max_attempts (retryable errors only); a non-retryable error or an
exhausted provider moves the job to the next one. The first success is written
to the content store and only its reference is handed back.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from seasonscape.providers.base import ProviderAdapter
from seasonscape.providers.errors import (
    ErrorClass,
    ProviderError,
    ProviderNotConfiguredError,
    user_message_for,
)
from seasonscape.providers.prompts import SceneDescription
from seasonscape.providers.retry import CircuitBreaker, retry_call
from seasonscape.providers.store import LocalImageStore

logger = logging.getLogger(__name__)

AttemptCallback = Callable[[str, int], None]


class JobState(str, enum.Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    RETRY_SCHEDULED = "retry_scheduled"
    PROVIDER_EXHAUSTED = "provider_exhausted"
    SUCCEEDED = "succeeded"
    ALL_EXHAUSTED = "all_exhausted"


@dataclass
class GenerationJob:
    """One request for an image, tracked through the provider chain."""

    prompt: str | None = None
    scene: SceneDescription | None = None
    reference_image: bytes | None = None
    subject: str = "garden"
    provider_chain: list[str] = field(default_factory=list)
    attempt: int = 0
    last_error: ErrorClass | None = None
    state: JobState = JobState.PENDING
    history: list[tuple[JobState, str | None]] = field(default_factory=list)

    @property
    def needs_reference(self) -> bool:
        return self.reference_image is not None

    def transition(self, state: JobState, provider: str | None = None) -> None:
        self.state = state
        self.history.append((state, provider))

    def prompt_for(self, adapter: ProviderAdapter) -> str:
        """Explicit prompt wins; otherwise the adapter renders the scene in its own style."""
        if self.prompt:
            return self.prompt
        if self.scene is None:
            raise ValueError("GenerationJob needs a prompt or a scene")
        if self.needs_reference:
            return adapter.build_enhance_prompt(self.scene)
        return adapter.build_prompt(self.scene)


@dataclass
class GenerationOutcome:
    succeeded: bool
    reference: str | None = None
    provider_id: str | None = None
    attempts: int = 0
    error_class: ErrorClass | None = None
    user_message: str | None = None


class ProviderOrchestrator:
    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        store: LocalImageStore,
        *,
        timeout: float | None = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
    ) -> None:
        self.adapters = list(adapters)
        self.store = store
        self.timeout = timeout
        self._sleep = sleep
        self.breakers = {
            a.provider_id: CircuitBreaker(failure_threshold, reset_timeout, clock) for a in self.adapters
        }

    @property
    def configured(self) -> list[ProviderAdapter]:
        return [a for a in self.adapters if a.is_configured]

    async def generate(
        self,
        prompt: str | None = None,
        *,
        scene: SceneDescription | None = None,
        subject: str = "garden",
        variant: str = "generated",
        on_attempt: AttemptCallback | None = None,
    ) -> GenerationOutcome:
        job = GenerationJob(prompt=prompt, scene=scene, subject=subject)
        return await self.run(job, variant, on_attempt)

    async def generate_from_reference(
        self,
        prompt: str | None,
        reference_png: bytes,
        *,
        scene: SceneDescription | None = None,
        subject: str = "garden",
        variant: str = "enhanced",
        on_attempt: AttemptCallback | None = None,
    ) -> GenerationOutcome:
        job = GenerationJob(prompt=prompt, scene=scene, reference_image=reference_png, subject=subject)
        return await self.run(job, variant, on_attempt)

    def chain_for(self, needs_reference: bool = False) -> list[ProviderAdapter]:
        """Configured adapters able to serve the job, in chain order.

        Raises ProviderNotConfiguredError before any call when nothing qualifies.
        """
        candidates = self.configured
        if not candidates:
            raise ProviderNotConfiguredError("No image provider is configured; set a provider API key")
        if needs_reference:
            candidates = [a for a in candidates if a.supports_reference]
            if not candidates:
                raise ProviderNotConfiguredError("No configured image provider accepts a reference image")
        return candidates

    async def run(
        self,
        job: GenerationJob,
        variant: str = "generated",
        on_attempt: AttemptCallback | None = None,
    ) -> GenerationOutcome:
        chain = self.chain_for(job.needs_reference)
        job.provider_chain = [a.provider_id for a in chain]
        last_error: ProviderError | None = None

        for adapter in chain:
            breaker = self.breakers[adapter.provider_id]
            if not breaker.allow():
                logger.warning("Skipping %s: circuit open", adapter.provider_id)
                continue

            prompt = job.prompt_for(adapter)
            job.transition(JobState.ATTEMPTING, adapter.provider_id)

            def _attempted(n: int, provider_id: str = adapter.provider_id) -> None:
                job.attempt += 1
                logger.debug("%s attempt %d (job attempt %d)", provider_id, n, job.attempt)
                if on_attempt is not None:
                    on_attempt(provider_id, n)

            def _retrying(n: int, error: ProviderError, delay: float, provider_id: str = adapter.provider_id) -> None:
                job.last_error = error.error_class
                job.transition(JobState.RETRY_SCHEDULED, provider_id)

            if job.reference_image is not None:
                call = functools.partial(adapter.generate_from_reference, prompt, job.reference_image)
            else:
                call = functools.partial(adapter.generate, prompt)

            try:
                outcome = await retry_call(
                    call,
                    adapter.policy,
                    label=adapter.provider_id,
                    timeout=self.timeout,
                    sleep=self._sleep,
                    on_attempt=_attempted,
                    on_retry=_retrying,
                )
            except (asyncio.CancelledError, Exception):
                # Cancelled or crashed: the call never reported on provider health
                breaker.release()
                raise

            if outcome.ok and outcome.value is not None:
                breaker.record_success()
                reference_url = await asyncio.to_thread(self.store.save, outcome.value, job.subject, variant)
                job.transition(JobState.SUCCEEDED, adapter.provider_id)
                logger.info(
                    "Generated %s via %s after %d attempts", reference_url, adapter.provider_id, job.attempt
                )
                return GenerationOutcome(
                    succeeded=True,
                    reference=reference_url,
                    provider_id=adapter.provider_id,
                    attempts=job.attempt,
                )

            last_error = outcome.error
            job.last_error = last_error.error_class if last_error else ErrorClass.SERVER
            if last_error is None or last_error.retryable:
                breaker.record_failure()
            else:
                # Rejected input says nothing about provider health
                breaker.release()
            job.transition(JobState.PROVIDER_EXHAUSTED, adapter.provider_id)
            logger.warning(
                "%s exhausted after %d attempts (%s), falling back",
                adapter.provider_id, outcome.attempts, job.last_error.value,
            )

        job.transition(JobState.ALL_EXHAUSTED)
        error_class = job.last_error or ErrorClass.SERVER
        logger.error(
            "All providers exhausted for %s after %d attempts: %s",
            job.subject, job.attempt, last_error or "every circuit open",
        )
        return GenerationOutcome(
            succeeded=False,
            attempts=job.attempt,
            error_class=error_class,
            user_message=user_message_for(error_class, job.attempt),
        )
