"""Domain vocabulary and strict schemas for activity recommendations.

This module defines the contract between the deterministic recommender and the
API/UI: quality tiers, the activity profile table, locations and the
recommendation records that flow out of a scoring pass. No scoring logic lives
here.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class QualityTier(str, Enum):
    """Coarse bucket derived from a 0-100 activity score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# (minimum score, tier), checked top-down
TIER_THRESHOLDS: tuple[tuple[int, QualityTier], ...] = (
    (80, QualityTier.EXCELLENT),
    (60, QualityTier.GOOD),
    (40, QualityTier.FAIR),
)


class ActivityProfile(_StrictBaseModel):
    """Weather thresholds that make an hour suitable for one activity.

    Temperatures are in °C, wind speed in m/s, precipitation is a probability
    in 0..1 and humidity is relative humidity in percent.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str
    label: str
    category: str
    icon: str
    min_temp: float
    max_temp: float = Field(gt=0)
    max_wind: float = Field(gt=0)
    max_precipitation: float = Field(ge=0)
    min_humidity: float = Field(ge=0)
    max_humidity: float = Field(gt=0, le=100)
    preferred_hours: FrozenSet[int]

    @field_validator("preferred_hours", mode="after")
    @classmethod
    def hours_in_day(cls, v: FrozenSet[int]) -> FrozenSet[int]:
        """Preferred hours are local hours of day."""
        bad = sorted(h for h in v if not 0 <= h <= 23)
        if bad:
            raise ValueError(f"preferred_hours must be within 0-23, got {bad}")
        return v

    @model_validator(mode="after")
    def ranges_are_ordered(self) -> "ActivityProfile":
        """Reject inverted temperature/humidity ranges."""
        if self.min_temp > self.max_temp:
            raise ValueError("min_temp must not exceed max_temp")
        if self.min_humidity > self.max_humidity:
            raise ValueError("min_humidity must not exceed max_humidity")
        return self

    @field_serializer("preferred_hours")
    def serialize_hours(self, v: FrozenSet[int]) -> List[int]:
        return sorted(v)

    @property
    def temp_mid(self) -> float:
        return (self.max_temp + self.min_temp) / 2

    @property
    def humidity_mid(self) -> float:
        return (self.max_humidity + self.min_humidity) / 2


def _hours(start: int, end: int) -> FrozenSet[int]:
    """Inclusive range of hours of day."""
    return frozenset(range(start, end + 1))


DEFAULT_ACTIVITY_PROFILES: Dict[str, ActivityProfile] = {
    "running": ActivityProfile(
        key="running",
        label="Running",
        category="Outdoor Sports",
        icon="running",
        min_temp=10,
        max_temp=25,
        max_wind=15,
        max_precipitation=0.1,
        min_humidity=30,
        max_humidity=80,
        preferred_hours=_hours(6, 18),
    ),
    "cycling": ActivityProfile(
        key="cycling",
        label="Cycling",
        category="Outdoor Sports",
        icon="bicycle",
        min_temp=12,
        max_temp=30,
        max_wind=20,
        max_precipitation=0.2,
        min_humidity=30,
        max_humidity=75,
        preferred_hours=_hours(7, 20),
    ),
    "beach": ActivityProfile(
        key="beach",
        label="Beach",
        category="Leisure",
        icon="umbrella-beach",
        min_temp=22,
        max_temp=35,
        max_wind=10,
        max_precipitation=0.05,
        min_humidity=40,
        max_humidity=70,
        preferred_hours=_hours(10, 17),
    ),
    "hiking": ActivityProfile(
        key="hiking",
        label="Hiking",
        category="Nature",
        icon="hiking",
        min_temp=5,
        max_temp=25,
        max_wind=20,
        max_precipitation=0.3,
        min_humidity=30,
        max_humidity=85,
        preferred_hours=_hours(5, 18),
    ),
}


class Recommendation(_StrictBaseModel):
    """Best hour, score and tier for one activity."""
    activity: str
    label: str
    category: str
    icon: str
    hour: int | None = None
    time: datetime | None = None
    score: int = Field(ge=0, le=100)
    tier: QualityTier


class ConditionSuggestion(_StrictBaseModel):
    """Static suggestion keyed off the current headline condition."""
    name: str
    icon: str
    time: str
    tier: QualityTier


class Location(_StrictBaseModel):
    """Coordinates the forecast is fetched for."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    name: str | None = None
    saved_at: datetime | None = None


class RecommendationContext(_StrictBaseModel):
    """Metadata describing how/when a recommendation pass was generated."""
    location: Location
    timezone: str | None = None
    generated_at: datetime | None = None
    source: str | None = None


class RecommendationPayload(_StrictBaseModel):
    """Full deterministic output of one recommendation cycle."""
    context: RecommendationContext
    recommendations: List[Recommendation] = Field(default_factory=list)
    suggestions: List[ConditionSuggestion] = Field(default_factory=list)
