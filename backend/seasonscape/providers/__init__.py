"""Image provider adapters, retry policy and fallback orchestration."""

from seasonscape.providers.base import ProviderAdapter
from seasonscape.providers.chain import build_provider_chain
from seasonscape.providers.errors import ErrorClass, ProviderError, ProviderNotConfiguredError, user_message_for
from seasonscape.providers.orchestrator import GenerationOutcome, ProviderOrchestrator
from seasonscape.providers.store import LocalImageStore

__all__ = [
    "ProviderAdapter",
    "build_provider_chain",
    "ErrorClass",
    "ProviderError",
    "ProviderNotConfiguredError",
    "user_message_for",
    "GenerationOutcome",
    "ProviderOrchestrator",
    "LocalImageStore",
]
