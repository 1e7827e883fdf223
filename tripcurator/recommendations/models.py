from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ..places.models import Category


class RankingMode(str, Enum):
    """How the final order is produced.

    ``raw`` returns the AI order as-is (AI-filtered, no fairness guarantees).
    ``rebalanced`` runs the category rebalance over the candidate pool.
    """

    raw = "raw"
    rebalanced = "rebalanced"


class RecommendationRequest(BaseModel):
    region: str | None = Field(
        default=None, min_length=1, description="Region or address to geocode"
    )
    lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    lng: float | None = Field(default=None, ge=-180.0, le=180.0)
    categories: list[Category] = Field(
        default_factory=list,
        description="Selected categories in display order; empty means FOOD",
    )
    radius_meters: int = Field(default=2500, ge=1, le=20_000)
    candidate_size: int = Field(default=15, ge=1, le=15)
    global_cap: int = Field(default=60, ge=1, le=200)
    min_per_category: int = Field(default=4, ge=0, le=20)
    top_picks_per_category: int = Field(default=1, ge=0, le=5)
    total_cap: int | None = Field(default=None, ge=1, le=200)
    mode: RankingMode = RankingMode.rebalanced
    fill_from_pool: bool = Field(
        default=True,
        description="Rebalance AI picks plus the unpicked candidates, not AI picks only",
    )

    @model_validator(mode="after")
    def _needs_a_center(self) -> RecommendationRequest:
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be given together")
        if self.lat is None and not self.region:
            raise ValueError("either region or lat/lng is required")
        return self
