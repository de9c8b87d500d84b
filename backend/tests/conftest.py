import pytest
from unittest.mock import MagicMock

from alleyway.config import Settings
from alleyway.integrations.registry import ProviderRegistry
from alleyway.models.entities import GeneratedItinerary
from alleyway.models.review import SupervisionResult
from alleyway.models.trip_parameters import TripParameters


SEOUL_SPOTS = [
    ("Gwangjang Market", "88 Changgyeonggung-ro, Jongno-gu", "market"),
    ("Ikseon-dong Hanok Alley", "Ikseon-dong, Jongno-gu", "neighborhood"),
    ("Euljiro Nogari Alley", "Euljiro 13-gil, Jung-gu", "bar"),
    ("Seoul Forest", "273 Ttukseom-ro, Seongdong-gu", "park"),
    ("Seongsu Handmade Shoe Street", "Seongsu-dong 2-ga, Seongdong-gu", "shopping"),
    ("Daelim Changgo", "78 Seongsui-ro, Seongdong-gu", "cafe"),
    ("Mangwon Market", "14 Poeun-ro 8-gil, Mapo-gu", "market"),
    ("Gyeongui Line Forest Park", "Yeonnam-dong, Mapo-gu", "park"),
    ("Hapjeong Jazz Bar", "Hapjeong-dong, Mapo-gu", "bar"),
]


def _itinerary_dict(city="Seoul", days=3, per_day=3):
    plans = []
    slots = ("morning", "afternoon", "evening")
    for day in range(days):
        activities = []
        for i in range(per_day):
            name, address, category = SEOUL_SPOTS[(day * per_day + i) % len(SEOUL_SPOTS)]
            activities.append({
                "time": ["9:00 AM", "1:00 PM", "7:00 PM"][i % 3],
                "type": slots[i % 3],
                "name": name,
                "address": address,
                "description": f"Local favourite #{day}-{i}",
                "category": category,
                "localleyScore": 4,
                "duration": "2 hours",
                "cost": "₩15,000",
            })
        plans.append({
            "day": day + 1,
            "theme": f"Day {day + 1} around {city}",
            "activities": activities,
            "localTip": "Carry cash for market stalls",
            "transportTips": "Use a T-money card",
        })
    return {
        "title": f"Hidden {city}",
        "subtitle": "Alleys, markets and late-night snacks",
        "city": city,
        "days": days,
        "localScore": 8,
        "estimatedCost": "₩300,000",
        "highlights": ["Gwangjang Market"],
        "dailyPlans": plans,
    }


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="test-openai",
        gemini_api_key="test-gemini",
        anthropic_api_key="test-anthropic",
        geocoding_pacing_ms=0,
        rate_limit_max_wait_s=0,
        retry_base_delay_s=0,
    )


@pytest.fixture
def params():
    return TripParameters(
        city="Seoul",
        days=3,
        interests=["street food", "coffee"],
        budget="moderate",
        localness_level=4,
        pace="moderate",
    )


@pytest.fixture
def itinerary_data():
    return _itinerary_dict()


@pytest.fixture
def make_itinerary():
    def _make(**kwargs):
        return GeneratedItinerary.model_validate(_itinerary_dict(**kwargs))
    return _make


@pytest.fixture
def itinerary(make_itinerary):
    return make_itinerary()


@pytest.fixture
def registry(itinerary):
    """Three mocked role providers that all succeed."""
    generation = MagicMock()
    generation.name = "openai"
    generation.is_available.return_value = True
    generation.generate_itinerary.return_value = itinerary

    validation = MagicMock()
    validation.name = "gemini"
    validation.is_available.return_value = True
    validation.validate_locations.return_value = []

    supervision = MagicMock()
    supervision.name = "claude"
    supervision.is_available.return_value = True
    supervision.supervise.return_value = SupervisionResult(approved=True, quality_score=8)

    return ProviderRegistry(generation=generation, validation=validation, supervision=supervision)


def chat_completion(content, prompt_tokens=10, completion_tokens=20):
    """Shape of an OpenAI chat completion response, as far as the clients read it."""
    resp = MagicMock()
    resp.choices = [MagicMock()]
    resp.choices[0].message.content = content
    resp.usage.prompt_tokens = prompt_tokens
    resp.usage.completion_tokens = completion_tokens
    resp.usage.total_tokens = prompt_tokens + completion_tokens
    return resp


@pytest.fixture
def completion():
    return chat_completion
