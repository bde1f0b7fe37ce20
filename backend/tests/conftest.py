"""Shared test fixtures."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from seasonscape.engine.compositor import SpriteCompositor
from seasonscape.engine.config import CompositorConfig
from seasonscape.engine.sprites import MemorySpriteStore
from seasonscape.models.plants import LayoutEntry, PlantRecord
from seasonscape.providers.base import ProviderAdapter
from seasonscape.providers.prompts import SceneDescription
from seasonscape.providers.retry import RetryPolicy
from seasonscape.providers.store import LocalImageStore

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)

# Minimal valid PNG returned by fake providers
FAKE_IMAGE = b"\x89PNG\r\n\x1a\nfake-image"


def make_sprite_png(width: int = 40, height: int = 60, color: tuple[int, int, int, int] = RED) -> bytes:
    """Opaque rectangle sprite encoded as PNG."""
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


# Catalog in the camelCase shape the web app stores
PLANT_DATA = [
    {
        "id": "holly",
        "commonName": "Winter Holly",
        "bloomStartDayOfYear": 320,
        "bloomEndDayOfYear": 60,
        "flowerColors": ["white"],
        "sprites": {"winter-bloom": "holly-bloom.png", "default": "holly.png"},
    },
    {
        "id": "rose",
        "commonName": "Rose",
        "cultivar": "Peace",
        "bloomStartMonth": 6,
        "bloomEndMonth": 8,
        "sprites": {"summer-bloom": "rose-bloom.png", "default": "rose.png"},
    },
    {
        "id": "fern",
        "scientificName": "Polystichum munitum",
        "sprites": {"default": "fern.png"},
    },
]


# 400x300 canvas -> 10px grid cells
SMALL_CANVAS = CompositorConfig(canvas_width=400, canvas_height=300)


class ScriptedAdapter(ProviderAdapter):
    """Provider double that replays a script of results/exceptions.

    The last script entry repeats once the script runs out.
    """

    def __init__(
        self,
        provider_id: str,
        script: list,
        *,
        supports_reference: bool = True,
        api_key: str = "test-key",
        policy: RetryPolicy | None = None,
    ) -> None:
        super().__init__(api_key, policy=policy)
        self.provider_id = provider_id
        self.supports_reference = supports_reference
        self.script = list(script)
        self.calls: list[tuple[str, str]] = []

    def build_prompt(self, scene: SceneDescription) -> str:
        return f"{self.provider_id} {scene.season} {', '.join(scene.blooming)}"

    async def generate(self, prompt: str) -> bytes:
        self.calls.append(("generate", prompt))
        return self._next()

    async def generate_from_reference(self, prompt: str, reference_png: bytes) -> bytes:
        self.calls.append(("reference", prompt))
        return self._next()

    def _next(self) -> bytes:
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return item


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def plants() -> list[PlantRecord]:
    return [PlantRecord.model_validate(p) for p in PLANT_DATA]


@pytest.fixture
def layout() -> list[LayoutEntry]:
    return [
        LayoutEntry(plant_ref="rose", grid_x=20, grid_y=20),
        LayoutEntry(plant_ref="holly", grid_x=10, grid_y=5, scale=1.5),
        LayoutEntry(plant_ref="fern", grid_x=30, grid_y=12),
    ]


@pytest.fixture
def sprite_store() -> MemorySpriteStore:
    return MemorySpriteStore(
        {
            "holly.png": make_sprite_png(30, 40, (0, 120, 0, 255)),
            "holly-bloom.png": make_sprite_png(30, 40, (250, 250, 250, 255)),
            "rose.png": make_sprite_png(20, 30, (0, 90, 0, 255)),
            "rose-bloom.png": make_sprite_png(20, 30, RED),
            "fern.png": make_sprite_png(24, 24, (40, 140, 40, 255)),
            "red.png": make_sprite_png(40, 60, RED),
            "blue.png": make_sprite_png(40, 60, BLUE),
        }
    )


@pytest.fixture
def compositor(sprite_store: MemorySpriteStore) -> SpriteCompositor:
    return SpriteCompositor(sprite_store, SMALL_CANVAS)


@pytest.fixture
def image_store(tmp_path) -> LocalImageStore:
    return LocalImageStore(tmp_path / "generated", "/generated")


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
