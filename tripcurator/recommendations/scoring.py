from __future__ import annotations

from ..places.models import Candidate

# Within ~1 km the distance term is in the thousands, so an AI score on its
# 0..1 scale and the rating only reorder places at near-equal distance.
RATING_WEIGHT = 0.1
DISTANCE_NUMERATOR = 1_000_000.0
DISTANCE_OFFSET = 50.0


def distance_bonus(distance_meters: int | None) -> float:
    """Smoothly decaying bonus for nearby places; 0 when distance is unknown."""
    if distance_meters is None:
        return 0.0
    return DISTANCE_NUMERATOR / (distance_meters + DISTANCE_OFFSET)


def final_score(candidate: Candidate) -> float:
    """AI score first, rating as a light tiebreaker, nearer is better."""
    ai = candidate.ai_score if candidate.ai_score is not None else 0.0
    rating = candidate.rating if candidate.rating is not None else 0.0
    return ai + rating * RATING_WEIGHT + distance_bonus(candidate.distance_meters)
