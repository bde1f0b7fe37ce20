"""Plant catalog and garden layout records — validated at the ingestion boundary.

Upstream data arrives as camelCase JSON; fields accept either spelling.
Missing bloom metadata stays None rather than being coerced to 0.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GRID_WIDTH = 40
GRID_HEIGHT = 30


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlantRecord(CamelModel):
    id: str
    common_name: str | None = None
    scientific_name: str | None = None
    cultivar: str | None = None
    bloom_start_day_of_year: int | None = Field(default=None, ge=1, le=365)
    bloom_end_day_of_year: int | None = Field(default=None, ge=1, le=365)
    bloom_start_month: int | None = Field(default=None, ge=1, le=12)
    bloom_end_month: int | None = Field(default=None, ge=1, le=12)
    flower_colors: list[str] = Field(default_factory=list)
    # Sprite refs keyed by season or "{season}-bloom" / "{season}-foliage"
    sprites: dict[str, str] = Field(default_factory=dict)

    @property
    def base_name(self) -> str:
        return self.common_name or self.scientific_name or self.id

    @property
    def display_name(self) -> str:
        if self.cultivar:
            return f"{self.base_name} '{self.cultivar}'"
        return self.base_name

    @property
    def has_day_bounds(self) -> bool:
        return self.bloom_start_day_of_year is not None and self.bloom_end_day_of_year is not None

    @property
    def has_month_bounds(self) -> bool:
        return self.bloom_start_month is not None and self.bloom_end_month is not None


class LayoutEntry(CamelModel):
    """One placed plant from the user's saved design."""

    plant_ref: str
    grid_x: float = Field(..., ge=0, le=GRID_WIDTH)
    grid_y: float = Field(..., ge=0, le=GRID_HEIGHT)
    scale: float = Field(default=1.0, gt=0)


class PlantPosition(CamelModel):
    """Compositor input: one sprite at one grid location."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    sprite_asset_ref: str
    grid_x: float = Field(..., ge=0, le=GRID_WIDTH)
    grid_y: float = Field(..., ge=0, le=GRID_HEIGHT)
    scale: float = Field(default=1.0, gt=0)
    label: str = ""
