"""Bloom lookup — which plants flower on a given day of the year."""

from __future__ import annotations

from collections.abc import Iterable

from seasonscape.engine.calendar import DEFAULT_YEAR, day_to_date_info
from seasonscape.models.plants import PlantRecord


def in_cyclic_range(value: int, start: int, end: int) -> bool:
    """Inclusive range test where end < start means the range wraps."""
    if start <= end:
        return start <= value <= end
    return value >= start or value <= end


def is_blooming(plant: PlantRecord, day_of_year: int, year: int = DEFAULT_YEAR) -> bool | None:
    """True/False when the plant has bloom data, None when it has none.

    Day-of-year bounds take precedence over month bounds. Month bounds are
    resolved against `year`, so day 60 is Feb 29 in a leap year and Mar 1 otherwise.
    """
    if plant.has_day_bounds:
        return in_cyclic_range(
            day_of_year, plant.bloom_start_day_of_year, plant.bloom_end_day_of_year
        )
    if plant.has_month_bounds:
        month = day_to_date_info(day_of_year, year).month
        return in_cyclic_range(month, plant.bloom_start_month, plant.bloom_end_month)
    return None


def get_plants_blooming_on_day(
    plants: Iterable[PlantRecord], day_of_year: int, year: int = DEFAULT_YEAR
) -> list[str]:
    """Display names of plants in bloom, in input order. Plants without bloom data are skipped."""
    return [p.display_name for p in plants if is_blooming(p, day_of_year, year)]


def bloom_status(plant: PlantRecord, day_of_year: int, year: int = DEFAULT_YEAR) -> str:
    """Short phrase describing the plant's flowering state, for prompts."""
    state = is_blooming(plant, day_of_year, year)
    if state is None:
        return "bloom time unknown"
    if not state:
        return "not in flower"
    if plant.flower_colors:
        return f"in full bloom with {' and '.join(plant.flower_colors)} flowers"
    return "in full bloom"
