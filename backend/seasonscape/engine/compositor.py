"""Sprite compositor — deterministic garden previews from a plant layout.

Maps the 40x30 logical grid onto a fixed pixel canvas, shrinks sprites by a
depth factor derived from grid_y, and alpha-blends them over a procedural lawn
in input order (later positions draw over earlier ones).
"""

from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError
from scipy.ndimage import gaussian_filter

from seasonscape.engine.config import CompositorConfig
from seasonscape.engine.sprites import AssetNotFoundError, SpriteStore
from seasonscape.models.plants import PlantPosition
from seasonscape.utils.math_helpers import round_half_up

logger = logging.getLogger(__name__)

# Noise amplitude (8-bit levels) for the lawn texture after blurring
_TEXTURE_AMPLITUDE = 9.0
_TOP_EDGE_SHADE = 0.90
_BOTTOM_EDGE_SHADE = 0.95


class CanvasSizeError(ValueError):
    """Sprite or canvas dimensions are degenerate."""


@dataclass(frozen=True)
class Placement:
    """Where one sprite ended up on the canvas."""

    label: str
    asset_ref: str
    grid: tuple[float, float]
    anchor: tuple[int, int]
    # (left, top, width, height) in canvas pixels, before edge clipping
    rect: tuple[int, int, int, int]
    scale: float


@dataclass
class CompositeCanvas:
    """Finished composite: PNG bytes plus what was drawn where."""

    png: bytes
    width: int
    height: int
    placements: list[Placement] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class SpriteCompositor:
    """Layers plant sprites onto a base lawn canvas."""

    def __init__(self, sprite_store: SpriteStore, config: CompositorConfig | None = None) -> None:
        self.sprite_store = sprite_store
        self.config = config or CompositorConfig()
        if self.config.canvas_width < 1 or self.config.canvas_height < 1:
            raise CanvasSizeError(
                f"Canvas must be at least 1x1, got {self.config.canvas_width}x{self.config.canvas_height}"
            )
        self._base: NDArray[np.uint8] | None = None

    def grid_to_pixels(self, grid_x: float, grid_y: float) -> tuple[int, int]:
        return (
            round_half_up(grid_x * self.config.cell_width),
            round_half_up(grid_y * self.config.cell_height),
        )

    def depth_scale(self, grid_y: float) -> float:
        return 1.0 - (grid_y / self.config.grid_height) * self.config.depth_falloff

    def create_base_canvas(self) -> Image.Image:
        """Procedural lawn: vertical gradient + blurred seeded noise + shaded edges."""
        if self._base is None:
            self._base = self._render_lawn()
        return Image.fromarray(self._base, "RGB").convert("RGBA")

    def _render_lawn(self) -> NDArray[np.uint8]:
        cfg = self.config
        h, w = cfg.canvas_height, cfg.canvas_width

        top = np.asarray(cfg.lawn_top_rgb, dtype=np.float64)
        bottom = np.asarray(cfg.lawn_bottom_rgb, dtype=np.float64)
        t = np.linspace(0.0, 1.0, h)[:, None, None]
        lawn = top + (bottom - top) * t
        lawn = np.broadcast_to(lawn, (h, w, 3)).copy()

        rng = np.random.default_rng(cfg.texture_seed)
        noise = gaussian_filter(rng.standard_normal((h, w)), sigma=cfg.texture_blur_sigma)
        peak = float(np.max(np.abs(noise))) or 1.0
        lawn += (noise / peak * _TEXTURE_AMPLITUDE)[:, :, None]

        band = min(cfg.edge_band_px, h)
        lawn[:band] *= _TOP_EDGE_SHADE
        lawn[h - band:] *= _BOTTOM_EDGE_SHADE

        return np.clip(lawn, 0, 255).astype(np.uint8)

    def composite_garden(self, positions: Sequence[PlantPosition]) -> CompositeCanvas:
        """Draw every position in order onto a fresh base canvas.

        Missing or undecodable sprites are skipped. Degenerate sprite sizes
        raise CanvasSizeError.
        """
        logger.info("Compositing garden with %d plants", len(positions))
        canvas = self.create_base_canvas()
        placements: list[Placement] = []
        skipped: list[str] = []

        for pos in positions:
            try:
                sprite = self._load_sprite(pos.sprite_asset_ref)
            except AssetNotFoundError as e:
                logger.warning("Skipping %s: %s", pos.label or pos.sprite_asset_ref, e)
                skipped.append(pos.sprite_asset_ref)
                continue

            placement = self._place(canvas, sprite, pos)
            placements.append(placement)
            logger.debug(
                "Placed %s at grid(%.1f,%.1f) -> px%s rect=%s",
                pos.label or "plant", pos.grid_x, pos.grid_y, placement.anchor, placement.rect,
            )

        buf = io.BytesIO()
        canvas.save(buf, format="PNG")
        return CompositeCanvas(
            png=buf.getvalue(),
            width=canvas.width,
            height=canvas.height,
            placements=placements,
            skipped=skipped,
        )

    def _load_sprite(self, asset_ref: str) -> Image.Image:
        data = self.sprite_store.load(asset_ref)
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.convert("RGBA")
        except (UnidentifiedImageError, OSError) as e:
            raise AssetNotFoundError(f"Sprite not decodable: {asset_ref}") from e

    def _place(self, canvas: Image.Image, sprite: Image.Image, pos: PlantPosition) -> Placement:
        src_w, src_h = sprite.size
        if src_w < 1 or src_h < 1:
            raise CanvasSizeError(f"Sprite {pos.sprite_asset_ref} has size {src_w}x{src_h}")

        final_scale = pos.scale * self.depth_scale(pos.grid_y)
        target_w = round_half_up(src_w * final_scale)
        target_h = round_half_up(src_h * final_scale)
        if target_w < 1 or target_h < 1:
            raise CanvasSizeError(
                f"Sprite {pos.sprite_asset_ref} scales to {target_w}x{target_h} at {final_scale:.3f}"
            )
        if (target_w, target_h) != (src_w, src_h):
            sprite = sprite.resize((target_w, target_h), Image.Resampling.LANCZOS)

        px, py = self.grid_to_pixels(pos.grid_x, pos.grid_y)
        left = max(0, px - round_half_up(target_w / 2))
        top = max(0, py - round_half_up(target_h * self.config.anchor_fraction))

        # Clip to the canvas; alpha_composite needs the overlay inside the bounds
        visible_w = min(target_w, canvas.width - left)
        visible_h = min(target_h, canvas.height - top)
        if visible_w > 0 and visible_h > 0:
            if (visible_w, visible_h) != (target_w, target_h):
                sprite = sprite.crop((0, 0, visible_w, visible_h))
            canvas.alpha_composite(sprite, dest=(left, top))

        return Placement(
            label=pos.label,
            asset_ref=pos.sprite_asset_ref,
            grid=(pos.grid_x, pos.grid_y),
            anchor=(px, py),
            rect=(left, top, target_w, target_h),
            scale=final_scale,
        )
