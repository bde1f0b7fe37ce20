"""Day-of-year calendar math for seasonal image selection.

Ranges may wrap the year boundary (e.g. Nov-Feb: 320 -> 60). A range is
wrap-around exactly when its end day is numerically before its start day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from seasonscape.utils.math_helpers import clamp, round_half_up

DAYS_IN_YEAR = 365
MAX_IMAGES = 8
# Leap year, so day 60 resolves to Feb 29
DEFAULT_YEAR = 2024

# Default image counts by range length
_SHORT_RANGE_DAYS = 30
_MEDIUM_RANGE_DAYS = 120
_SHORT_RANGE_IMAGES = 3
_MEDIUM_RANGE_IMAGES = 5
_LONG_RANGE_IMAGES = 7
_MEDIUM_DAYS_PER_IMAGE = 24
_LONG_DAYS_PER_IMAGE = 40

_MONTH_LENGTHS = [31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]

_WEATHER_PHRASES = {
    "spring": ["mild spring weather", "gentle spring breeze", "soft spring light", "fresh spring air"],
    "summer": ["warm summer sunshine", "bright summer day", "golden summer light", "clear summer sky"],
    "autumn": ["crisp autumn air", "golden autumn light", "cool autumn breeze", "clear autumn day"],
    "winter": ["soft winter light", "crisp winter air", "gentle winter sunshine", "clear winter day"],
}


class InvalidRangeError(ValueError):
    """Day bounds outside 1..365."""


@dataclass(frozen=True)
class DayRange:
    start_day: int
    end_day: int
    total_days: int
    is_wrap_around: bool


@dataclass(frozen=True)
class SelectedDay:
    day_of_year: int
    date: str  # ISO YYYY-MM-DD
    month: int
    season: str


def calculate_day_range(start_day: int, end_day: int) -> DayRange:
    """Build a DayRange, counting days forward from start_day (inclusive)."""
    for value in (start_day, end_day):
        if not 1 <= value <= DAYS_IN_YEAR:
            raise InvalidRangeError(
                f"Day values must be between 1 and {DAYS_IN_YEAR}, got {value}"
            )

    is_wrap_around = end_day < start_day
    if is_wrap_around:
        total_days = (DAYS_IN_YEAR - start_day + 1) + end_day
    else:
        total_days = end_day - start_day + 1

    return DayRange(
        start_day=start_day,
        end_day=end_day,
        total_days=total_days,
        is_wrap_around=is_wrap_around,
    )


def generate_day_sequence(day_range: DayRange) -> list[int]:
    """All days in the range in forward order: start..365 then 1..end when wrapping."""
    if day_range.is_wrap_around:
        return list(range(day_range.start_day, DAYS_IN_YEAR + 1)) + list(
            range(1, day_range.end_day + 1)
        )
    return list(range(day_range.start_day, day_range.end_day + 1))


def default_image_count(total_days: int) -> int:
    """How many images to generate for a range when the caller doesn't say."""
    if total_days <= _SHORT_RANGE_DAYS:
        count = min(_SHORT_RANGE_IMAGES, total_days)
    elif total_days <= _MEDIUM_RANGE_DAYS:
        count = min(_MEDIUM_RANGE_IMAGES, math.ceil(total_days / _MEDIUM_DAYS_PER_IMAGE))
    else:
        count = min(_LONG_RANGE_IMAGES, math.ceil(total_days / _LONG_DAYS_PER_IMAGE))
    return max(1, count)


def select_days_for_images(day_range: DayRange, requested_count: int | None = None) -> list[int]:
    """Pick representative days across the range, evenly spaced by index.

    A single image takes the middle element of the day sequence by index, not
    the calendar midpoint.
    """
    if requested_count is not None:
        image_count = int(clamp(requested_count, 1, MAX_IMAGES))
    else:
        image_count = default_image_count(day_range.total_days)

    all_days = generate_day_sequence(day_range)

    if image_count == 1:
        return [all_days[len(all_days) // 2]]

    if image_count >= len(all_days):
        return all_days

    step = (len(all_days) - 1) / (image_count - 1)
    picked = [all_days[round_half_up(i * step)] for i in range(image_count)]

    return sort_days_in_range(set(picked), day_range)


def sort_days_in_range(days, day_range: DayRange) -> list[int]:
    """Sort days in the range's forward order (days >= start come first when wrapping)."""
    if not day_range.is_wrap_around:
        return sorted(days)
    return sorted(days, key=lambda d: (0 if d >= day_range.start_day else 1, d))


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def season_for_month(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"


def day_to_date_info(day_of_year: int, year: int = DEFAULT_YEAR) -> SelectedDay:
    """Resolve a day-of-year to its calendar date, month and season."""
    lengths = list(_MONTH_LENGTHS)
    if is_leap_year(year):
        lengths[1] = 29

    if not 1 <= day_of_year <= sum(lengths):
        raise InvalidRangeError(f"Day {day_of_year} is not in year {year}")

    month = 1
    day_in_month = day_of_year
    for i, length in enumerate(lengths):
        if day_in_month <= length:
            month = i + 1
            break
        day_in_month -= length

    return SelectedDay(
        day_of_year=day_of_year,
        date=date(year, month, day_in_month).isoformat(),
        month=month,
        season=season_for_month(month),
    )


def describe_weather(day_of_year: int, season: str) -> str:
    """Deterministic weather phrase for prompts."""
    options = _WEATHER_PHRASES.get(season, _WEATHER_PHRASES["summer"])
    return options[(day_of_year + len(season)) % len(options)]
