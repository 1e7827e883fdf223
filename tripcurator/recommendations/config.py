from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..places.models import Category


@dataclass(frozen=True)
class RecommendationConfig:
    min_per_category: int = 4
    top_picks_per_category: int = 1
    total_cap: int | None = None
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT_S", "30"))
    ai_top_count: int = 3
    default_categories: tuple[Category, ...] = field(default=(Category.FOOD,))


DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()
