from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class WeatherConfig:
    api_key: str = os.getenv("OPENWEATHER_API_KEY", "")
    base_url: str = "https://api.openweathermap.org/"
    timeout: float = float(os.getenv("WEATHER_TIMEOUT_S", "8"))
    units: str = "metric"
    lang: str = os.getenv("WEATHER_LANG", "en")


DEFAULT_WEATHER_CONFIG = WeatherConfig()
