"""Common surface for image generation providers."""

from __future__ import annotations

import abc
import base64
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from seasonscape.providers.errors import (
    ClientError,
    ProviderNotConfiguredError,
    ServerError,
    error_for_status,
)
from seasonscape.providers.prompts import SceneDescription
from seasonscape.providers.retry import RetryPolicy


class ProviderAdapter(abc.ABC):
    """One remote image model.

    Adapters share an injected httpx.AsyncClient when given one; otherwise a
    short-lived client is opened per request. Each adapter carries its own
    retry policy and prompt style.
    """

    provider_id: str = "provider"
    supports_reference: bool = False

    def __init__(
        self,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        policy: RetryPolicy | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.is_configured:
            raise ProviderNotConfiguredError(f"{self.provider_id} API key is not set")

    @abc.abstractmethod
    def build_prompt(self, scene: SceneDescription) -> str:
        """Text-to-image prompt in this provider's style."""

    def build_enhance_prompt(self, scene: SceneDescription) -> str:
        return self.build_prompt(scene)

    @abc.abstractmethod
    async def generate(self, prompt: str) -> bytes:
        """Text-to-image. Returns encoded image bytes."""

    async def generate_from_reference(self, prompt: str, reference_png: bytes) -> bytes:
        raise ClientError(f"{self.provider_id} does not accept a reference image")

    @asynccontextmanager
    async def http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def post_json(self, url: str, payload: Any, headers: dict[str, str]) -> Any:
        async with self.http() as client:
            response = await client.post(url, json=payload, headers=headers)
        if response.status_code >= 400:
            raise error_for_status(response, self.provider_id)
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(f"{self.provider_id} returned a non-JSON body") from e

    async def download(self, url: str) -> bytes:
        async with self.http() as client:
            response = await client.get(url)
        if response.status_code >= 400:
            raise error_for_status(response, self.provider_id)
        if not response.content:
            raise ServerError(f"{self.provider_id} image download was empty")
        return response.content

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.provider_id}>"


def encode_png(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def json_object(value: Any) -> dict[str, Any]:
    """`value` if it is a JSON object, else an empty one."""
    return value if isinstance(value, dict) else {}


def json_objects(value: Any) -> list[dict[str, Any]]:
    """The object entries of a JSON array; anything else yields nothing."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def decode_image(data: Any, provider: str) -> bytes:
    if not isinstance(data, str):
        raise ServerError(f"{provider} returned image data of type {type(data).__name__}")
    try:
        raw = base64.b64decode(data, validate=True)
    except ValueError as e:
        raise ServerError(f"{provider} returned malformed image data") from e
    if not raw:
        raise ServerError(f"{provider} returned empty image data")
    return raw
