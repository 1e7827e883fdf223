from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

MAX_RADIUS_METERS = 20_000
MAX_PAGE_SIZE = 15  # Kakao caps category search at 15 per page


@dataclass(frozen=True)
class SearchConfig:
    api_key: str = os.getenv("KAKAO_REST_API_KEY", "")
    base_url: str = "https://dapi.kakao.com/"
    timeout: float = float(os.getenv("SEARCH_TIMEOUT_S", "10"))
    category_timeout: float = float(os.getenv("CATEGORY_TIMEOUT_S", "8"))
    radius_meters: int = 2500
    page_size: int = MAX_PAGE_SIZE
    global_cap: int = 60


def clamp_radius(radius_meters: int) -> int:
    return min(MAX_RADIUS_METERS, max(1, radius_meters))


def clamp_page_size(size: int) -> int:
    return min(MAX_PAGE_SIZE, max(1, size))


DEFAULT_SEARCH_CONFIG = SearchConfig()
