"""Seasonscape calendar, bloom and compositing engine."""

from seasonscape.engine.bloom import get_plants_blooming_on_day
from seasonscape.engine.calendar import (
    DayRange,
    InvalidRangeError,
    SelectedDay,
    calculate_day_range,
    day_to_date_info,
    generate_day_sequence,
    select_days_for_images,
)
from seasonscape.engine.compositor import CanvasSizeError, CompositeCanvas, SpriteCompositor
from seasonscape.engine.sprites import AssetNotFoundError, FileSpriteStore

__all__ = [
    "get_plants_blooming_on_day",
    "DayRange",
    "InvalidRangeError",
    "SelectedDay",
    "calculate_day_range",
    "day_to_date_info",
    "generate_day_sequence",
    "select_days_for_images",
    "CanvasSizeError",
    "CompositeCanvas",
    "SpriteCompositor",
    "AssetNotFoundError",
    "FileSpriteStore",
]
