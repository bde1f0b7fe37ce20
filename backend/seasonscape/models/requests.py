"""API request models."""

from __future__ import annotations

from pydantic import Field

from seasonscape.models.plants import CamelModel, LayoutEntry, PlantRecord


class CalendarDaysRequest(CamelModel):
    start_day: int = Field(..., description="First day of year (1-365)")
    end_day: int = Field(..., description="Last day of year (1-365); before start_day wraps the year")
    image_count: int | None = Field(default=None, description="Images wanted; clamped to 1..8")
    plants: list[PlantRecord] = Field(
        default_factory=list,
        description="Optional catalog used to annotate each day with blooming plants",
    )
    layout: list[LayoutEntry] | None = Field(
        default=None,
        description="When given, only catalog plants placed in this layout count as blooming",
    )


class VisualizeRequest(CamelModel):
    layout: list[LayoutEntry] = Field(..., description="Placed plants from the saved design")
    plants: list[PlantRecord] = Field(..., description="Catalog records for every plant in the layout")
    start_day: int
    end_day: int
    image_count: int | None = None
    enhance: bool | None = Field(default=None, description="Photorealistic enhancement; default from config")
    prompt: str | None = Field(default=None, description="Overrides the generated provider prompt")
    style: str = "photorealistic"
    subject: str = Field(default="garden", description="Used in generated file names")


class EnhanceRequest(CamelModel):
    layout: list[LayoutEntry]
    plants: list[PlantRecord]
    day_of_year: int = Field(..., ge=1, le=365)
    prompt: str | None = None
    style: str = "photorealistic"
    subject: str = "garden"
