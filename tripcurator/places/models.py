from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


class Category(str, Enum):
    FOOD = "FOOD"
    CAFE = "CAFE"
    PHOTO = "PHOTO"
    CULTURE = "CULTURE"
    SHOPPING = "SHOPPING"
    HEALING = "HEALING"
    EXPERIENCE = "EXPERIENCE"
    STAY = "STAY"


# Rough indoor/outdoor nature of each category, sent to the AI as a hint.
INDOOR_HINTS: dict[Category, bool | None] = {
    Category.FOOD: True,
    Category.CAFE: True,
    Category.CULTURE: True,
    Category.SHOPPING: True,
    Category.STAY: True,
    Category.PHOTO: False,
    Category.HEALING: False,
    Category.EXPERIENCE: None,
}


class Candidate(BaseModel):
    """Canonical place record. ``id`` is the only identity key."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: Category
    lat: float
    lng: float
    distance_meters: int | None = Field(default=None, ge=0)
    rating: float | None = None
    address: str | None = None
    ai_score: float | None = None


_PRECIPITATION = {"rain", "drizzle", "thunderstorm", "snow", "sleet", "shower"}


class WeatherBrief(BaseModel):
    model_config = ConfigDict(frozen=True)

    temp_c: float
    feels_like_c: float | None = None
    humidity: int | None = None
    condition: str = "Unknown"
    wind: float | None = Field(default=None, description="Wind speed in m/s")

    @property
    def is_adverse(self) -> bool:
        """Precipitation, wind >= 10 m/s, or feels-like outside 0..32 C."""
        cond = self.condition.lower()
        if any(word in cond for word in _PRECIPITATION):
            return True
        if self.wind is not None and self.wind >= 10.0:
            return True
        feels = self.feels_like_c if self.feels_like_c is not None else self.temp_c
        return feels <= 0.0 or feels >= 32.0


class RankedPick(BaseModel):
    id: str
    score: float = Field(allow_inf_nan=False)
    reason: str = ""
    indoor: bool | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("reason", mode="before")
    @classmethod
    def _reason_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class AiRerankReply(BaseModel):
    policy: str = Field(
        default="",
        validation_alias=AliasChoices("policy", "weather_policy"),
    )
    picked: list[RankedPick] = Field(default_factory=list)

    @field_validator("policy", mode="before")
    @classmethod
    def _policy_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("picked", mode="before")
    @classmethod
    def _drop_unusable_picks(cls, value: Any) -> Any:
        # Drop entries that fail validation, keep the rest.
        if not isinstance(value, list):
            return value
        kept = []
        for entry in value:
            try:
                kept.append(RankedPick.model_validate(entry))
            except ValidationError:
                continue
        return kept


class RecommendationResult(BaseModel):
    places: list[Candidate]
    weather: WeatherBrief | None = None
    reasons: dict[str, str] = Field(default_factory=dict)
    top_picks: list[Candidate] = Field(default_factory=list)
    ai_top_ids: set[str] = Field(default_factory=set)

    @model_validator(mode="after")
    def _check_membership(self) -> RecommendationResult:
        ids = [p.id for p in self.places]
        if len(ids) != len(set(ids)):
            raise ValueError("places contains duplicate ids")
        known = set(ids)
        stray = [p.id for p in self.top_picks if p.id not in known]
        stray += [rid for rid in self.reasons if rid not in known]
        if stray:
            raise ValueError(f"ids missing from places: {sorted(set(stray))}")
        return self
