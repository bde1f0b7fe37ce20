"""Engine configuration — canvas geometry and pipeline behavior."""

from __future__ import annotations

import math
from dataclasses import dataclass

from seasonscape.engine.calendar import DEFAULT_YEAR

# Downstream image models want both canvas sides divisible by 64
DIMENSION_MULTIPLE = 64


def snap_to_multiple(value: float, multiple: int = DIMENSION_MULTIPLE) -> int:
    """Nearest positive multiple of `multiple` (ties round down: 1440 -> 1408)."""
    snapped = math.ceil(value / multiple - 0.5) * multiple
    return max(multiple, snapped)


@dataclass
class CompositorConfig:
    """Canvas size, grid size and sprite placement constants."""

    canvas_width: int = snap_to_multiple(1920)
    canvas_height: int = snap_to_multiple(1440)
    grid_width: int = 40
    grid_height: int = 30

    # Depth scale is 1 - (grid_y / grid_height) * depth_falloff
    depth_falloff: float = 0.3
    # Fraction of sprite height drawn above the anchor point (ground contact)
    anchor_fraction: float = 0.8

    # Procedural lawn texture
    texture_seed: int = 7
    texture_blur_sigma: float = 1.2
    lawn_top_rgb: tuple[int, int, int] = (0x7C, 0xB3, 0x42)
    lawn_bottom_rgb: tuple[int, int, int] = (0x68, 0x9F, 0x38)
    edge_band_px: int = 50

    @property
    def cell_width(self) -> float:
        return self.canvas_width / self.grid_width

    @property
    def cell_height(self) -> float:
        return self.canvas_height / self.grid_height


@dataclass
class PipelineConfig:
    """Controls per-day fan-out and enhancement."""

    max_concurrent_days: int = 3
    enhance: bool = True
    year: int = DEFAULT_YEAR
