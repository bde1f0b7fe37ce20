"""Hugging Face Inference API (FLUX). Text-to-image only."""

from __future__ import annotations

import logging

import httpx

from seasonscape.providers.base import ProviderAdapter
from seasonscape.providers.errors import ServerError, error_for_status
from seasonscape.providers.prompts import SceneDescription, build_flux_prompt
from seasonscape.providers.retry import RetryPolicy

logger = logging.getLogger(__name__)

HF_INFERENCE_URL = "https://api-inference.huggingface.co/models"

# Cold models answer 503 while loading; wait longer between attempts
HF_POLICY = RetryPolicy(base_delays=(5.0, 10.0, 20.0))


class HuggingFaceAdapter(ProviderAdapter):
    provider_id = "huggingface"
    supports_reference = False

    def __init__(
        self,
        api_key: str,
        model: str = "black-forest-labs/FLUX.1-dev",
        *,
        width: int = 1024,
        height: int = 768,
        steps: int = 28,
        guidance_scale: float = 3.5,
        client: httpx.AsyncClient | None = None,
        policy: RetryPolicy | None = None,
        timeout: float = 60.0,
        base_url: str = HF_INFERENCE_URL,
    ) -> None:
        super().__init__(api_key, client=client, policy=policy or HF_POLICY, timeout=timeout)
        self.model = model
        self.width = width
        self.height = height
        self.steps = steps
        self.guidance_scale = guidance_scale
        self.url = f"{base_url.rstrip('/')}/{model}"

    def build_prompt(self, scene: SceneDescription) -> str:
        return build_flux_prompt(scene)

    async def generate(self, prompt: str) -> bytes:
        self.ensure_configured()
        payload = {
            "inputs": prompt,
            "parameters": {
                "width": self.width,
                "height": self.height,
                "num_inference_steps": self.steps,
                "guidance_scale": self.guidance_scale,
            },
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "image/png"}
        async with self.http() as client:
            response = await client.post(self.url, json=payload, headers=headers)
        if response.status_code >= 400:
            raise error_for_status(response, self.provider_id)

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("image/") or not response.content:
            raise ServerError(f"huggingface returned {content_type or 'no content type'} instead of an image")
        return response.content
