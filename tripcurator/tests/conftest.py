import json

import pytest

from tripcurator.recommendations.pipeline import RecommendationServices
from tripcurator.search.config import SearchConfig
from tripcurator.llm.config import LLMConfig
from tripcurator.weather.client import WeatherReport

SEONGSU = (37.5446, 127.0557)


def kakao_doc(pid, code, distance):
    return {
        "id": pid,
        "place_name": f"Place {pid}",
        "category_group_code": code,
        "x": "127.05",
        "y": "37.54",
        "address_name": "Seongdong-gu",
        "distance": str(distance),
    }


DOCS_BY_CODE = {
    "FD6": [kakao_doc("f1", "FD6", 100), kakao_doc("f2", "FD6", 200), kakao_doc("f3", "FD6", 300)],
    "CE7": [kakao_doc("c1", "CE7", 150), kakao_doc("c2", "CE7", 250)],
}


class FakeSearch:
    def __init__(self, docs_by_code=None, center=SEONGSU, fail=False):
        self.docs_by_code = DOCS_BY_CODE if docs_by_code is None else docs_by_code
        self.center = center
        self.fail = fail
        self.searched = []

    async def search(self, center_lat, center_lng, category_codes, radius_meters, page_size):
        if self.fail:
            raise RuntimeError("search down")
        self.searched.extend(category_codes)
        out = []
        for code in category_codes:
            out.extend(self.docs_by_code.get(code, []))
        return out

    async def geocode(self, query):
        return self.center


class FakeWeather:
    def __init__(self, report=None, fail=False):
        self.report = report or WeatherReport(temp_c=9.0, condition="Rain", feels_like_c=7.0)
        self.fail = fail

    async def current(self, lat, lng):
        if self.fail:
            raise RuntimeError("weather down")
        return self.report


class FakeLLM:
    def __init__(self, picked=None, raw=None):
        self.raw = raw if raw is not None else json.dumps({"policy": "indoor", "picked": picked or []})
        self.calls = 0

    async def complete(self, messages):
        self.calls += 1
        return self.raw


AI_PICKS = [
    {"id": "c1", "score": 0.8, "reason": "Warm cafe out of the rain."},
    {"id": "f2", "score": 0.9, "reason": "Indoor seating, close by."},
    {"id": "ghost", "score": 1.0, "reason": "Does not exist."},
]


def make_services(search=None, weather=None, llm=None):
    return RecommendationServices(
        search=search or FakeSearch(),
        weather=weather,
        llm=llm,
        search_config=SearchConfig(api_key="k", category_timeout=2.0),
        llm_config=LLMConfig(api_key="k", enabled=True, timeout=2.0),
    )


@pytest.fixture
def services():
    return make_services(weather=FakeWeather(), llm=FakeLLM(AI_PICKS))
