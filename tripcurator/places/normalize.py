from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ValidationError

from ..errors import ValidationFailure
from .models import Candidate, Category

logger = logging.getLogger(__name__)

# Kakao category_group_code -> Category. Unlisted codes fall back to CULTURE.
CODE_TO_CATEGORY: dict[str, Category] = {
    "FD6": Category.FOOD,
    "CE7": Category.CAFE,
    "CT1": Category.CULTURE,
    "AT4": Category.PHOTO,
    "MT1": Category.SHOPPING,
    "CS2": Category.SHOPPING,
    "AD5": Category.STAY,
}
FALLBACK_CATEGORY = Category.CULTURE


@dataclass(frozen=True)
class FieldAliases:
    """Per-field source key names, tried in order. First usable value wins."""

    id: tuple[str, ...]
    name: tuple[str, ...]
    lat: tuple[str, ...]
    lng: tuple[str, ...]
    distance: tuple[str, ...] = ()
    rating: tuple[str, ...] = ()
    address: tuple[str, ...] = ()
    category: tuple[str, ...] = ()
    ai_score: tuple[str, ...] = ()


# Kakao Local "documents" entries: x is longitude, y is latitude, all strings.
KAKAO_ALIASES = FieldAliases(
    id=("id",),
    name=("place_name",),
    lat=("y",),
    lng=("x",),
    distance=("distance",),
    address=("address_name", "road_address_name"),
    category=("category_group_code",),
)

# Accepts canonical Candidate dumps as well as the historical spellings seen
# across providers and older app versions.
GENERIC_ALIASES = FieldAliases(
    id=("id", "placeId", "place_id"),
    name=("name", "place_name", "title"),
    lat=("lat", "latitude", "y"),
    lng=("lng", "longitude", "lon", "x"),
    distance=("distance_meters", "distanceMeters", "distance"),
    rating=("rating", "avg_rating"),
    address=(
        "address",
        "road_address_name",
        "roadAddressName",
        "address_name",
        "addressName",
    ),
    category=("category", "category_group_code", "categoryName"),
    ai_score=("ai_score", "aiScore"),
)


@dataclass(frozen=True)
class Unusable:
    """A record that could not be mapped onto a Candidate."""

    field: str
    reason: str

    @property
    def failure(self) -> ValidationFailure:
        return ValidationFailure(f"{self.field}: {self.reason}")


# ---------------------------------------------------------------------------
# Value coercion. None means "not usable", never raises.
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError:
            # past the int -> str digit limit
            return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_rating(value: Any) -> float | None:
    # Handle "X/5" strings (e.g. "4.1/5")
    if isinstance(value, str) and "/" in value:
        value = value.split("/")[0]
    return _as_float(value)


def _as_distance(value: Any) -> int | None:
    number = _as_float(value)
    if number is None or number < 0:
        return None
    return int(round(number))


def _as_category(value: Any) -> Category | None:
    if isinstance(value, Category):
        return value
    text = _as_text(value)
    if text is None:
        return None
    try:
        return Category(text.upper())
    except ValueError:
        pass
    return CODE_TO_CATEGORY.get(text.upper())


def _first(record: Mapping[str, Any], keys: tuple[str, ...], convert) -> Any:
    for key in keys:
        if key in record:
            value = convert(record[key])
            if value is not None:
                return value
    return None


class RecordAdapter:
    """Maps one provider's raw records onto Candidates using static aliases."""

    def __init__(self, aliases: FieldAliases, source: str = "generic") -> None:
        self.aliases = aliases
        self.source = source

    def adapt(
        self,
        record: Any,
        category_hint: Category | None = None,
    ) -> Candidate | Unusable:
        if isinstance(record, Candidate):
            if category_hint is None or record.category == category_hint:
                return record
            return record.model_copy(update={"category": category_hint})
        if isinstance(record, BaseModel):
            record = record.model_dump()
        if not isinstance(record, Mapping):
            return Unusable("record", f"unsupported shape {type(record).__name__}")

        a = self.aliases
        rid = _first(record, a.id, _as_text)
        if rid is None:
            return Unusable("id", "missing")
        name = _first(record, a.name, _as_text)
        if name is None:
            return Unusable("name", "missing")
        lat = _first(record, a.lat, _as_float)
        if lat is None or not -90.0 <= lat <= 90.0:
            return Unusable("lat", "missing or out of range")
        lng = _first(record, a.lng, _as_float)
        if lng is None or not -180.0 <= lng <= 180.0:
            return Unusable("lng", "missing or out of range")

        # The category a record was searched under beats what the provider
        # code says (AT4 serves PHOTO, HEALING and EXPERIENCE alike).
        category = category_hint or _first(record, a.category, _as_category)

        try:
            return Candidate(
                id=rid,
                name=name,
                category=category or FALLBACK_CATEGORY,
                lat=lat,
                lng=lng,
                distance_meters=_first(record, a.distance, _as_distance),
                rating=_first(record, a.rating, _as_rating),
                address=_first(record, a.address, _as_text),
                ai_score=_first(record, a.ai_score, _as_float),
            )
        except ValidationError as exc:
            return Unusable("record", str(exc))


GENERIC_ADAPTER = RecordAdapter(GENERIC_ALIASES, source="generic")
KAKAO_ADAPTER = RecordAdapter(KAKAO_ALIASES, source="kakao")


def normalize(
    record: Any,
    category_hint: Category | None = None,
    adapter: RecordAdapter = GENERIC_ADAPTER,
) -> Candidate | Unusable:
    return adapter.adapt(record, category_hint)


def normalize_records(
    records: Iterable[Any],
    category_hint: Category | None = None,
    adapter: RecordAdapter = GENERIC_ADAPTER,
) -> list[Candidate]:
    """Map records in order, silently dropping the unusable ones."""
    out: list[Candidate] = []
    dropped = 0
    for record in records:
        result = adapter.adapt(record, category_hint)
        if isinstance(result, Unusable):
            dropped += 1
            logger.debug("%s record dropped: %s", adapter.source, result.failure)
            continue
        out.append(result)
    if dropped:
        logger.info("%s: dropped %d unusable record(s)", adapter.source, dropped)
    return out
