from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from ..errors import ConfigurationFailure
from ..places.models import WeatherBrief
from .config import DEFAULT_WEATHER_CONFIG, WeatherConfig

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "TripCurator/0.1",
    "Accept": "application/json",
}


class WeatherReport(BaseModel):
    temp_c: float
    condition: str = "Unknown"
    icon: str | None = None
    feels_like_c: float | None = None
    humidity: int | None = None
    wind_mps: float | None = None

    def to_brief(self) -> WeatherBrief:
        return WeatherBrief(
            temp_c=self.temp_c,
            feels_like_c=self.feels_like_c,
            humidity=self.humidity,
            condition=self.condition,
            wind=self.wind_mps,
        )


def _parse_report(js: dict[str, Any]) -> WeatherReport | None:
    main = js.get("main") or {}
    temp = main.get("temp")
    if temp is None:
        return None
    conditions = js.get("weather")
    desc = conditions[0] if isinstance(conditions, list) and conditions else {}
    if not isinstance(desc, dict):
        desc = {}
    humidity = main.get("humidity")
    return WeatherReport(
        temp_c=float(temp),
        condition=desc.get("main") or "Unknown",
        icon=desc.get("icon"),
        feels_like_c=main.get("feels_like"),
        humidity=int(humidity) if humidity is not None else None,
        wind_mps=(js.get("wind") or {}).get("speed"),
    )


class OpenWeatherClient:
    """Current conditions from OpenWeather ``data/2.5/weather``."""

    def __init__(
        self,
        config: WeatherConfig = DEFAULT_WEATHER_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.api_key:
            raise ConfigurationFailure("OPENWEATHER_API_KEY is not set")
        self.config = config
        self._transport = transport

    async def current(self, lat: float, lng: float) -> WeatherReport | None:
        """Return the current report, or None when the lookup fails."""
        params = {
            "lat": lat,
            "lon": lng,
            "units": self.config.units,
            "lang": self.config.lang,
            "appid": self.config.api_key,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers=HEADERS,
                transport=self._transport,
            ) as client:
                r = await client.get("data/2.5/weather", params=params)
            if r.status_code != 200:
                logger.warning("weather lookup status %s", r.status_code)
                return None
            return _parse_report(r.json())
        except (httpx.HTTPError, ValueError, TypeError, AttributeError, KeyError, IndexError):
            logger.warning("weather lookup failed for (%s, %s)", lat, lng, exc_info=True)
            return None
