"""Runware imageInference tasks (Stable Diffusion family, image-to-image capable)."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import httpx

from seasonscape.engine.config import snap_to_multiple
from seasonscape.providers.base import ProviderAdapter, encode_png, json_objects
from seasonscape.providers.errors import ClientError, ServerError
from seasonscape.providers.prompts import (
    SceneDescription,
    build_runware_negative_prompt,
    build_runware_prompt,
)
from seasonscape.providers.retry import RetryPolicy

logger = logging.getLogger(__name__)

RUNWARE_URL = "https://api.runware.ai/v1"
_MAX_SIDE = 2048


class RunwareAdapter(ProviderAdapter):
    provider_id = "runware"
    supports_reference = True

    def __init__(
        self,
        api_key: str,
        model: str = "runware:100@1",
        *,
        width: int = 1920,
        height: int = 1408,
        strength: float = 0.65,
        steps: int = 28,
        client: httpx.AsyncClient | None = None,
        policy: RetryPolicy | None = None,
        timeout: float = 60.0,
        url: str = RUNWARE_URL,
    ) -> None:
        super().__init__(api_key, client=client, policy=policy, timeout=timeout)
        self.model = model
        self.width = min(snap_to_multiple(width), _MAX_SIDE)
        self.height = min(snap_to_multiple(height), _MAX_SIDE)
        self.strength = strength
        self.steps = steps
        self.url = url
        self.negative_prompt = build_runware_negative_prompt()

    def build_prompt(self, scene: SceneDescription) -> str:
        return build_runware_prompt(scene)

    async def generate(self, prompt: str) -> bytes:
        return await self._infer(self._task(prompt))

    async def generate_from_reference(self, prompt: str, reference_png: bytes) -> bytes:
        task = self._task(prompt)
        task["seedImage"] = f"data:image/png;base64,{encode_png(reference_png)}"
        task["strength"] = self.strength
        return await self._infer(task)

    def _task(self, prompt: str) -> dict[str, Any]:
        return {
            "taskType": "imageInference",
            "taskUUID": str(uuid.uuid4()),
            "positivePrompt": prompt,
            "negativePrompt": self.negative_prompt,
            "model": self.model,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
            "numberResults": 1,
            "outputType": "URL",
            "outputFormat": "PNG",
        }

    async def _infer(self, task: dict[str, Any]) -> bytes:
        self.ensure_configured()
        headers = {"Authorization": f"Bearer {self.api_key}"}
        logger.debug("Runware task %s (%dx%d)", task["taskUUID"], task["width"], task["height"])
        body = await self.post_json(self.url, [task], headers)

        if not isinstance(body, dict):
            raise ServerError("runware returned an unexpected payload")
        errors = body.get("errors")
        if errors:
            details = json_objects(errors)
            if not details:
                raise ServerError("runware returned a malformed errors field")
            message = details[0].get("message") or details[0].get("code") or "unknown error"
            raise ClientError(f"runware rejected the task: {message}")

        for item in json_objects(body.get("data")):
            image_url = item.get("imageURL")
            if item.get("taskUUID") == task["taskUUID"] and isinstance(image_url, str) and image_url:
                return await self.download(image_url)

        raise ServerError("runware response contained no image URL")
