"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    seasonscape_env: str = "development"
    seasonscape_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Provider credentials (empty = not configured)
    gemini_api_key: str = ""
    runware_api_key: str = ""
    huggingface_api_key: str = ""

    # Provider chain, tried in order. Gemini expands to one entry per model.
    provider_chain: list[str] = ["gemini", "runware", "huggingface"]
    gemini_models: list[str] = [
        "gemini-2.5-flash-image-preview",
        "gemini-2.0-flash-preview-image-generation",
    ]
    runware_model: str = "runware:100@1"
    huggingface_model: str = "black-forest-labs/FLUX.1-dev"

    # Retry / timeouts
    provider_timeout_s: float = 60.0
    max_attempts_per_provider: int = 3
    reference_strength: float = 0.65
    # Fraction of each backoff delay added at random
    retry_jitter: float = 0.3

    # Pipeline
    max_concurrent_days: int = 3
    cache_ttl_s: float = 300.0
    cache_max_entries: int = 128

    # Storage
    sprite_dir: str = "public/plant-sprites"
    output_dir: str = "public/generated"
    output_url_prefix: str = "/generated"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
