from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from ..errors import ConfigurationFailure
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import GroqChatClient
from ..llm.rerank import rerank
from ..places.models import Candidate, Category, RecommendationResult, WeatherBrief
from ..protocols import ChatCompleter, PlaceSearch, WeatherLookup
from ..search.aggregator import aggregate_candidates
from ..search.config import DEFAULT_SEARCH_CONFIG, SearchConfig
from ..search.kakao_client import KakaoLocalClient
from ..weather.client import OpenWeatherClient
from ..weather.config import DEFAULT_WEATHER_CONFIG, WeatherConfig
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .models import RankingMode, RecommendationRequest
from .rebalance import rebalance

logger = logging.getLogger(__name__)


@dataclass
class RecommendationServices:
    """Collaborators built once at startup and handed to every request."""

    search: PlaceSearch
    weather: WeatherLookup | None = None
    llm: ChatCompleter | None = None
    search_config: SearchConfig = DEFAULT_SEARCH_CONFIG
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG


def build_services(
    search_config: SearchConfig = DEFAULT_SEARCH_CONFIG,
    weather_config: WeatherConfig = DEFAULT_WEATHER_CONFIG,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> RecommendationServices:
    """Place search is mandatory; weather and AI scoring are optional."""
    search = KakaoLocalClient(search_config)

    weather: WeatherLookup | None = None
    try:
        weather = OpenWeatherClient(weather_config)
    except ConfigurationFailure:
        logger.warning("weather lookup disabled: no OpenWeather key")

    llm: ChatCompleter | None = None
    if llm_config.enabled:
        try:
            llm = GroqChatClient(llm_config)
        except ConfigurationFailure:
            logger.warning("AI rerank disabled: no Groq key")

    return RecommendationServices(
        search=search,
        weather=weather,
        llm=llm,
        search_config=search_config,
        llm_config=llm_config,
    )


async def resolve_center(
    request: RecommendationRequest,
    services: RecommendationServices,
) -> tuple[float, float] | None:
    if request.lat is not None and request.lng is not None:
        return (request.lat, request.lng)
    try:
        return await services.search.geocode(request.region or "")
    except Exception:
        logger.warning("geocode failed for region=%r", request.region, exc_info=True)
        return None


async def _fetch_weather(
    weather: WeatherLookup | None, center: tuple[float, float]
) -> WeatherBrief | None:
    if weather is None:
        return None
    try:
        report = await weather.current(*center)
    except Exception:
        logger.warning("weather lookup failed", exc_info=True)
        return None
    return report.to_brief() if report is not None else None


def _raw_top_picks(
    places: Sequence[Candidate], categories: Sequence[Category], per_category: int
) -> list[Candidate]:
    """First ``per_category`` places of each category, in list order."""
    counts = {cat: 0 for cat in categories}
    picks: list[Candidate] = []
    for p in places:
        if p.category in counts and counts[p.category] < per_category:
            counts[p.category] += 1
            picks.append(p)
    return picks


async def get_recommendations(
    request: RecommendationRequest,
    center: tuple[float, float],
    services: RecommendationServices,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> RecommendationResult:
    """
    Search -> weather -> AI rerank -> final ordering.

    Weather runs concurrently with the category searches. The AI call starts
    only once the merged pool is known. Every step degrades instead of
    raising; the whole request is bounded by ``config.request_timeout``.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + config.request_timeout

    def remaining() -> float:
        return max(0.0, deadline - loop.time())

    categories = list(dict.fromkeys(request.categories or config.default_categories))
    weather_task = asyncio.create_task(_fetch_weather(services.weather, center))
    try:
        candidates = await aggregate_candidates(
            services.search,
            center,
            categories,
            radius_meters=request.radius_meters,
            per_category_size=request.candidate_size,
            global_cap=request.global_cap,
            timeout=min(services.search_config.category_timeout, remaining()),
        )

        try:
            weather = await asyncio.wait_for(weather_task, timeout=remaining())
        except asyncio.TimeoutError:
            logger.warning("weather lookup timed out")
            weather = None

        label = ", ".join(cat.value for cat in categories)
        ordered, reasons = await rerank(
            services.llm,
            label,
            weather,
            candidates,
            config=services.llm_config,
            timeout=min(services.llm_config.timeout, remaining()),
        )
    finally:
        if not weather_task.done():
            weather_task.cancel()

    ai_ordered = [c.id for c in ordered if c.ai_score is not None]
    logger.info(
        "candidates=%d ai_picked=%d reasons=%d mode=%s",
        len(candidates),
        len(ai_ordered),
        len(reasons),
        request.mode.value,
    )

    if request.mode is RankingMode.raw:
        places = list(ordered)
        if request.total_cap is not None:
            places = places[: request.total_cap]
        top_picks = _raw_top_picks(places, categories, request.top_picks_per_category)
    else:
        pool = list(ordered)
        if request.fill_from_pool:
            picked = {c.id for c in pool}
            pool.extend(c for c in candidates if c.id not in picked)
        top_picks, places = rebalance(
            pool,
            categories,
            min_per_category=request.min_per_category,
            top_picks_per_category=request.top_picks_per_category,
            total_cap=request.total_cap,
        )

    final_ids = {p.id for p in places}
    return RecommendationResult(
        places=places,
        weather=weather,
        reasons={rid: r for rid, r in reasons.items() if rid in final_ids},
        top_picks=top_picks,
        ai_top_ids={rid for rid in ai_ordered[: config.ai_top_count] if rid in final_ids},
    )
