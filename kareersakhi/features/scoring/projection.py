"""Score projection for gauges and progress bars."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping

from kareersakhi.models.analysis import MatchResult, ScoreResult


class ColorBand(str, Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"


# (lower bound, band), highest first. Text and fill colors both derive from this.
BAND_THRESHOLDS = (
    (80, ColorBand.HIGH),
    (60, ColorBand.MID),
)

BAND_COLORS = {
    ColorBand.HIGH: {"text": "text-success-500", "fill": "bg-success-500"},
    ColorBand.MID: {"text": "text-accent-400", "fill": "bg-accent-400"},
    ColorBand.LOW: {"text": "text-error-500", "fill": "bg-error-500"},
}


@dataclass(frozen=True)
class GaugeSize:
    radius: float
    thickness: int


GAUGE_SIZES = {
    "sm": GaugeSize(radius=36, thickness=4),
    "md": GaugeSize(radius=58, thickness=6),
    "lg": GaugeSize(radius=74, thickness=8),
}
DEFAULT_GAUGE_SIZE = "md"


@dataclass(frozen=True)
class ScoreProjection:
    clamped: int
    color_band: ColorBand
    arc_offset: float
    circumference: float

    @property
    def text_color(self) -> str:
        return BAND_COLORS[self.color_band]["text"]

    @property
    def fill_color(self) -> str:
        return BAND_COLORS[self.color_band]["fill"]

    @property
    def progress_width(self) -> str:
        return f"{self.clamped}%"

    def as_dict(self) -> Dict[str, object]:
        return {
            "clamped": self.clamped,
            "color_band": self.color_band.value,
            "arc_offset": self.arc_offset,
            "circumference": self.circumference,
            "text_color": self.text_color,
            "fill_color": self.fill_color,
        }


def clamp_score(score: float) -> int:
    if score is None or math.isnan(score):
        return 0
    if math.isinf(score):
        return 100 if score > 0 else 0
    # half-up, not banker's rounding
    return min(100, max(0, math.floor(score + 0.5)))


def color_band(clamped: int) -> ColorBand:
    for lower, band in BAND_THRESHOLDS:
        if clamped >= lower:
            return band
    return ColorBand.LOW


def project(score: float, radius: float = GAUGE_SIZES[DEFAULT_GAUGE_SIZE].radius) -> ScoreProjection:
    clamped = clamp_score(score)
    circumference = 2 * math.pi * radius
    return ScoreProjection(
        clamped=clamped,
        color_band=color_band(clamped),
        arc_offset=circumference * (1 - clamped / 100),
        circumference=circumference,
    )


def project_for_size(score: float, size: str = DEFAULT_GAUGE_SIZE) -> ScoreProjection:
    return project(score, radius=GAUGE_SIZES[size].radius)


def project_sections(sections: Mapping[str, float]) -> Dict[str, ScoreProjection]:
    return {name: project(value) for name, value in sections.items()}


def project_score_result(result: ScoreResult, size: str = "lg") -> Dict[str, object]:
    return {
        "overall": project_for_size(result.overall, size).as_dict(),
        "sections": {k: v.as_dict() for k, v in project_sections(result.sections).items()},
    }


def project_match_result(result: MatchResult, size: str = "lg") -> Dict[str, object]:
    return {
        "overall_match": project_for_size(result.overall_match, size).as_dict(),
        "keyword_match": project(result.keyword_match).as_dict(),
        "skills_match": project(result.skills_match).as_dict(),
        "experience_match": project(result.experience_match).as_dict(),
    }
