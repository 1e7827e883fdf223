from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from ..errors import ConfigurationFailure, TransportFailure
from ..places.models import Category
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig, clamp_page_size, clamp_radius

logger = logging.getLogger(__name__)

# Category -> Kakao category_group_code(s). Several categories share AT4
# (tourist attractions) since Kakao has no finer split for them.
CATEGORY_CODES: dict[Category, tuple[str, ...]] = {
    Category.FOOD: ("FD6",),
    Category.CAFE: ("CE7",),
    Category.CULTURE: ("CT1",),
    Category.PHOTO: ("AT4",),
    Category.SHOPPING: ("MT1", "CS2"),
    Category.HEALING: ("AT4",),
    Category.EXPERIENCE: ("AT4", "AC5"),
    Category.STAY: ("AD5",),
}


class KakaoLocalClient:
    """Kakao Local REST API: category search and address geocoding."""

    def __init__(
        self,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.api_key:
            raise ConfigurationFailure("KAKAO_REST_API_KEY is not set")
        self.config = config
        self._transport = transport
        self._headers = {
            "Authorization": f"KakaoAK {config.api_key}",
            "User-Agent": "TripCurator/0.1",
            "Accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def _get_documents(
        self, client: httpx.AsyncClient, path: str, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        try:
            r = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"kakao {path}: {exc}") from exc
        if r.status_code != 200:
            raise TransportFailure(f"kakao {path}: status {r.status_code}")
        try:
            docs = r.json().get("documents") or []
        except (ValueError, AttributeError) as exc:
            raise TransportFailure(f"kakao {path}: undecodable body") from exc
        return [d for d in docs if isinstance(d, dict)]

    async def search(
        self,
        center_lat: float,
        center_lng: float,
        category_codes: Sequence[str],
        radius_meters: int,
        page_size: int,
    ) -> list[dict[str, Any]]:
        """Raw category documents, one request per code, concatenated in code order."""
        out: list[dict[str, Any]] = []
        async with self._client() as client:
            for code in category_codes:
                params = {
                    "category_group_code": code,
                    "x": center_lng,
                    "y": center_lat,
                    "radius": clamp_radius(radius_meters),
                    "size": clamp_page_size(page_size),
                    "sort": "distance",
                }
                out.extend(
                    await self._get_documents(client, "v2/local/search/category.json", params)
                )
        return out

    async def geocode(self, query: str) -> tuple[float, float] | None:
        """Region or address -> (lat, lng). None when nothing matches."""
        async with self._client() as client:
            docs = await self._get_documents(
                client, "v2/local/search/address.json", {"query": query}
            )
        if not docs:
            return None
        # Kakao uses x=longitude, y=latitude
        try:
            return (float(docs[0]["y"]), float(docs[0]["x"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("geocode: unusable coordinates for %r", query)
            return None
