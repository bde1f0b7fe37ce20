"""API response models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from seasonscape.models.plants import CamelModel


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str = "0.1.0"
    providers_configured: list[str] = Field(default_factory=list)


class CalendarDay(CamelModel):
    day_of_year: int
    date: str
    month: int
    season: str
    weather: str
    blooming: list[str] = Field(default_factory=list)


class CalendarDaysResponse(CamelModel):
    start_day: int
    end_day: int
    total_days: int
    is_wrap_around: bool
    days: list[CalendarDay] = Field(default_factory=list)


class DayResultResponse(CamelModel):
    day_of_year: int
    date: str
    season: str
    blooming: list[str] = Field(default_factory=list)
    composite_url: str | None = None
    image_url: str | None = None
    enhanced: bool = False
    status: str = "queued"
    error: str | None = None
    attempts: int = 0
    provider: str | None = None
    skipped_sprites: list[str] = Field(default_factory=list)


class VisualizeStartResponse(CamelModel):
    job_id: str
    status: str = "queued"


class JobStatusResponse(CamelModel):
    job_id: str
    status: str
    days: dict[int, str] = Field(default_factory=dict)
    counts: dict[str, int] = Field(default_factory=dict)
    events: list[dict[str, Any]] = Field(default_factory=list)
    results: list[DayResultResponse] | None = None
    images: dict[int, str | None] | None = None
    error: str | None = None
