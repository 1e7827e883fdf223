from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request

from .errors import ConfigurationFailure
from .places.models import Category, RecommendationResult
from .recommendations.models import RankingMode, RecommendationRequest
from .recommendations.pipeline import (
    RecommendationServices,
    build_services,
    get_recommendations,
    resolve_center,
)
from .search.kakao_client import CATEGORY_CODES

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("tripcurator")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the collaborators once at startup."""
    app.state.services = None
    app.state.config_error = None
    try:
        app.state.services = build_services()
    except ConfigurationFailure as exc:
        log.error("service configuration failed: %s", exc)
        app.state.config_error = str(exc)
    yield


app = FastAPI(title="Trip Curator Recommendation API", version="0.1.0", lifespan=lifespan)


def get_services(request: Request) -> RecommendationServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        detail = getattr(request.app.state, "config_error", None) or "services are not ready"
        raise HTTPException(status_code=503, detail=detail)
    return services


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/categories")
def categories() -> dict:
    return {
        "categories": [
            {"name": cat.value, "codes": list(CATEGORY_CODES[cat])} for cat in Category
        ],
        "modes": [m.value for m in RankingMode],
    }


@app.post("/recommendations", response_model=RecommendationResult)
async def recommendations(
    body: RecommendationRequest,
    services: RecommendationServices = Depends(get_services),
) -> RecommendationResult:
    center = await resolve_center(body, services)
    if center is None:
        raise HTTPException(status_code=400, detail=f"Could not locate region: {body.region}")

    return await get_recommendations(body, center, services)
