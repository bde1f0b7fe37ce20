"""Prompt builders per provider — pure functions of a SceneDescription.

Gemini takes narrative instructions, Runware (Stable Diffusion) wants short
comma-separated phrases plus a negative prompt, FLUX sits in between. Every
builder keeps the output under a provider-specific length by dropping trailing
plant names rather than cutting text mid-word.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from seasonscape.engine.calendar import SelectedDay, describe_weather

GEMINI_MAX_CHARS = 4000
RUNWARE_MAX_CHARS = 1900
FLUX_MAX_CHARS = 1000

_SEASON_GROUND = {
    "spring": "fresh green growth, moist dark soil",
    "summer": "lush full foliage, dry warm mulch",
    "autumn": "fallen leaves on the beds, turning foliage",
    "winter": "dormant stems, bare soil, frost-touched grass",
}


@dataclass(frozen=True)
class SceneDescription:
    season: str
    date: str
    month: int
    weather: str
    blooming: tuple[str, ...] = ()
    plants: tuple[str, ...] = ()
    # "Name: bloom phrase" per placed plant
    plant_states: tuple[str, ...] = ()
    style: str = "photorealistic"

    @classmethod
    def from_day(
        cls,
        day: SelectedDay,
        blooming: Sequence[str] = (),
        plants: Sequence[str] = (),
        style: str = "photorealistic",
        plant_states: Sequence[str] = (),
    ) -> SceneDescription:
        return cls(
            season=day.season,
            date=day.date,
            month=day.month,
            weather=describe_weather(day.day_of_year, day.season),
            blooming=tuple(blooming),
            plants=tuple(plants),
            plant_states=tuple(plant_states),
            style=style,
        )

    @property
    def ground(self) -> str:
        return _SEASON_GROUND.get(self.season, _SEASON_GROUND["summer"])


def fit_names(template: str, names: Sequence[str], max_chars: int, empty: str = "none") -> str:
    """Fill `{names}` in template with as many names as fit within max_chars."""
    kept: list[str] = []
    for name in names:
        candidate = template.replace("{names}", ", ".join([*kept, name]))
        if len(candidate) > max_chars:
            break
        kept.append(name)
    text = template.replace("{names}", ", ".join(kept) if kept else empty)
    if len(text) > max_chars:
        text = text[:max_chars].rsplit(" ", 1)[0]
    return text


def build_gemini_prompt(scene: SceneDescription) -> str:
    head = (
        f"Professional {scene.style} garden photograph taken on {scene.date} ({scene.season}).\n"
        f"Conditions: {scene.weather}; {scene.ground}.\n"
    )
    tail = "Eye-level view across the beds, natural light, botanically accurate, no text or labels."
    budget = GEMINI_MAX_CHARS - len(head) - len(tail)
    blooming = fit_names(
        "In bloom today: {names}. Plants not listed as blooming show foliage only.\n",
        scene.blooming,
        budget // 2,
        empty="nothing is in flower",
    )
    plants = fit_names(
        "Plants in the garden: {names}.\n", scene.plant_states or scene.plants, budget - len(blooming)
    )
    return head + plants + blooming + tail


def build_gemini_enhance_prompt(scene: SceneDescription) -> str:
    head = (
        f"Transform this garden composite into a {scene.style} photograph for {scene.date} "
        f"({scene.season}, {scene.weather}).\n"
        "Preserve the exact position, size and number of every plant; do not add, remove or move plants.\n"
        "Replace the flat sprites with natural plant texture, soil, shadows and depth of field.\n"
    )
    tail = "Keep the camera angle and framing. No text, labels or borders."
    budget = GEMINI_MAX_CHARS - len(head) - len(tail)
    flowering = fit_names("Flowering now: {names}.\n", scene.blooming, budget // 2)
    states = ""
    if scene.plant_states:
        states = fit_names("Plant by plant: {names}.\n", scene.plant_states, budget - len(flowering))
    return head + flowering + states + tail


def build_runware_prompt(scene: SceneDescription) -> str:
    template = (
        f"{scene.style} garden photograph, {scene.season}, {scene.weather}, {scene.ground}, "
        "flowering {names}, natural lighting, high detail, sharp focus"
    )
    return fit_names(template, scene.blooming, RUNWARE_MAX_CHARS, empty="green foliage")


def build_runware_negative_prompt() -> str:
    return ", ".join([
        "text", "watermark", "labels", "cartoon", "illustration", "blurry",
        "distorted plants", "extra plants", "people", "buildings",
    ])


def build_flux_prompt(scene: SceneDescription) -> str:
    template = (
        f"A {scene.style} ornamental garden in {scene.season} ({scene.date}), {scene.weather}. "
        "Plants: {names}. "
        f"{scene.ground}. Botanical photography, natural daylight."
    )
    names = [f"{n} (flowering)" if n in scene.blooming else n for n in scene.plants]
    return fit_names(template, names, FLUX_MAX_CHARS)
