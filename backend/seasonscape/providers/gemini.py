"""Google Gemini image generation over the REST generateContent endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from seasonscape.providers.base import ProviderAdapter, decode_image, encode_png, json_object, json_objects
from seasonscape.providers.errors import ClientError, ServerError
from seasonscape.providers.prompts import (
    SceneDescription,
    build_gemini_enhance_prompt,
    build_gemini_prompt,
)
from seasonscape.providers.retry import RetryPolicy

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(ProviderAdapter):
    """One Gemini model. Chains list one adapter per model, newest first."""

    supports_reference = True

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        client: httpx.AsyncClient | None = None,
        policy: RetryPolicy | None = None,
        timeout: float = 60.0,
        base_url: str = GEMINI_BASE_URL,
    ) -> None:
        super().__init__(api_key, client=client, policy=policy, timeout=timeout)
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.provider_id = f"gemini:{model}"

    def build_prompt(self, scene: SceneDescription) -> str:
        return build_gemini_prompt(scene)

    def build_enhance_prompt(self, scene: SceneDescription) -> str:
        return build_gemini_enhance_prompt(scene)

    async def generate(self, prompt: str) -> bytes:
        return await self._generate([{"text": prompt}])

    async def generate_from_reference(self, prompt: str, reference_png: bytes) -> bytes:
        parts = [
            {"text": prompt},
            {"inlineData": {"mimeType": "image/png", "data": encode_png(reference_png)}},
        ]
        return await self._generate(parts)

    async def _generate(self, parts: list[dict[str, Any]]) -> bytes:
        self.ensure_configured()
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.debug("POST %s (%d parts)", url, len(parts))
        body = await self.post_json(url, payload, {"x-goog-api-key": self.api_key})
        return self._extract_image(body)

    def _extract_image(self, body: Any) -> bytes:
        if not isinstance(body, dict):
            raise ServerError(f"{self.provider_id} returned an unexpected payload")

        block_reason = json_object(body.get("promptFeedback")).get("blockReason")
        if block_reason:
            raise ClientError(f"{self.provider_id} blocked the prompt: {block_reason}")

        for candidate in json_objects(body.get("candidates")):
            for part in json_objects(json_object(candidate.get("content")).get("parts")):
                inline = json_object(part.get("inlineData") or part.get("inline_data"))
                if inline.get("data"):
                    return decode_image(inline["data"], self.provider_id)

        raise ServerError(f"{self.provider_id} response contained no image")
