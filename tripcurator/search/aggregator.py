from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Sequence

from ..places.models import Candidate, Category
from ..places.normalize import KAKAO_ADAPTER, RecordAdapter, normalize_records
from ..protocols import PlaceSearch
from .config import DEFAULT_SEARCH_CONFIG
from .kakao_client import CATEGORY_CODES

logger = logging.getLogger(__name__)


async def _search_category(
    search: PlaceSearch,
    center: tuple[float, float],
    category: Category,
    codes: Sequence[str],
    radius_meters: int,
    page_size: int,
    timeout: float,
    adapter: RecordAdapter,
) -> list[Candidate]:
    """One category's candidates. Never raises: failures contribute nothing."""
    lat, lng = center
    try:
        raw = await asyncio.wait_for(
            search.search(lat, lng, codes, radius_meters, page_size),
            timeout=timeout,
        )
        return normalize_records(raw or [], category_hint=category, adapter=adapter)
    except asyncio.TimeoutError:
        logger.warning("search %s timed out after %ss", category.value, timeout)
        return []
    except Exception:
        logger.warning("search %s failed", category.value, exc_info=True)
        return []


async def aggregate_candidates(
    search: PlaceSearch,
    center: tuple[float, float],
    categories: Sequence[Category],
    radius_meters: int = DEFAULT_SEARCH_CONFIG.radius_meters,
    per_category_size: int = DEFAULT_SEARCH_CONFIG.page_size,
    global_cap: int = DEFAULT_SEARCH_CONFIG.global_cap,
    timeout: float = DEFAULT_SEARCH_CONFIG.category_timeout,
    category_codes: Mapping[Category, Sequence[str]] = CATEGORY_CODES,
    adapter: RecordAdapter = KAKAO_ADAPTER,
) -> list[Candidate]:
    """
    Search every category concurrently, then merge in category order.

    Within a category the provider's order is kept. The first occurrence of
    an id wins. Once ``global_cap`` candidates are merged, remaining
    categories are skipped (a category is never cut in half).
    """
    order: list[Category] = list(dict.fromkeys(categories))
    if not order:
        return []

    # Fan out; each task only returns its own list, the merge below is the
    # single writer.
    chunks = await asyncio.gather(*(
        _search_category(
            search,
            center,
            cat,
            tuple(category_codes.get(cat, ())),
            radius_meters,
            per_category_size,
            timeout,
            adapter,
        )
        for cat in order
    ))

    merged: dict[str, Candidate] = {}
    for cat, chunk in zip(order, chunks):
        if len(merged) >= global_cap:
            logger.debug("global cap %d reached before %s", global_cap, cat.value)
            break
        for c in chunk:
            merged.setdefault(c.id, c)
        logger.debug("cat=%s chunk=%d merged=%d", cat.value, len(chunk), len(merged))

    logger.info("aggregated %d candidate(s) from %d categories", len(merged), len(order))
    return list(merged.values())
