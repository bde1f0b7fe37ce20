"""POST /api/calendar/days — representative days for a date range."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from seasonscape.engine.bloom import get_plants_blooming_on_day
from seasonscape.engine.calendar import (
    DEFAULT_YEAR,
    InvalidRangeError,
    calculate_day_range,
    day_to_date_info,
    describe_weather,
    select_days_for_images,
)
from seasonscape.engine.pipeline import layout_plants
from seasonscape.models.requests import CalendarDaysRequest
from seasonscape.models.responses import CalendarDay, CalendarDaysResponse

router = APIRouter()


@router.post("/calendar/days", response_model=CalendarDaysResponse)
async def calendar_days(body: CalendarDaysRequest) -> CalendarDaysResponse:
    try:
        day_range = calculate_day_range(body.start_day, body.end_day)
    except InvalidRangeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    plants = body.plants if body.layout is None else layout_plants(body.layout, body.plants)
    days = []
    for day_of_year in select_days_for_images(day_range, body.image_count):
        info = day_to_date_info(day_of_year, DEFAULT_YEAR)
        days.append(
            CalendarDay(
                day_of_year=day_of_year,
                date=info.date,
                month=info.month,
                season=info.season,
                weather=describe_weather(day_of_year, info.season),
                blooming=get_plants_blooming_on_day(plants, day_of_year, DEFAULT_YEAR),
            )
        )

    return CalendarDaysResponse(
        start_day=day_range.start_day,
        end_day=day_range.end_day,
        total_days=day_range.total_days,
        is_wrap_around=day_range.is_wrap_around,
        days=days,
    )
