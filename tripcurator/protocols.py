from __future__ import annotations

from typing import Any, Protocol, Sequence

from .weather.client import WeatherReport


class PlaceSearch(Protocol):
    async def search(
        self,
        center_lat: float,
        center_lng: float,
        category_codes: Sequence[str],
        radius_meters: int,
        page_size: int,
    ) -> list[dict[str, Any]]: ...

    async def geocode(self, query: str) -> tuple[float, float] | None: ...


class WeatherLookup(Protocol):
    async def current(self, lat: float, lng: float) -> WeatherReport | None: ...


class ChatCompleter(Protocol):
    async def complete(self, messages: list[dict[str, str]]) -> str: ...
