"""
Supported destinations with the data the geocoder needs: country, local
languages (primary first) and a reference center used both to bias backend
queries and to reject results that land in the wrong place.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class CityConfig:
    slug: str
    name: str
    country: str
    country_code: str
    languages: Tuple[str, ...]
    center: Tuple[float, float]  # (lat, lng)

    @property
    def local_language(self) -> Optional[str]:
        return next((lang for lang in self.languages if lang != "en"), None)


CITIES: Tuple[CityConfig, ...] = (
    CityConfig("seoul", "Seoul", "South Korea", "KR", ("ko", "en"), (37.5665, 126.9780)),
    CityConfig("busan", "Busan", "South Korea", "KR", ("ko", "en"), (35.1796, 129.0756)),
    CityConfig("jeju", "Jeju", "South Korea", "KR", ("ko", "en"), (33.4996, 126.5312)),
    CityConfig("gyeongju", "Gyeongju", "South Korea", "KR", ("ko", "en"), (35.8562, 129.2247)),
    CityConfig("tokyo", "Tokyo", "Japan", "JP", ("ja", "en"), (35.6762, 139.6503)),
    CityConfig("osaka", "Osaka", "Japan", "JP", ("ja", "en"), (34.6937, 135.5023)),
    CityConfig("kyoto", "Kyoto", "Japan", "JP", ("ja", "en"), (35.0116, 135.7681)),
    CityConfig("nara", "Nara", "Japan", "JP", ("ja", "en"), (34.6851, 135.8048)),
    CityConfig("kanazawa", "Kanazawa", "Japan", "JP", ("ja", "en"), (36.5613, 136.6562)),
    CityConfig("sapporo", "Sapporo", "Japan", "JP", ("ja", "en"), (43.0618, 141.3545)),
    CityConfig("okinawa", "Okinawa", "Japan", "JP", ("ja", "en"), (26.2124, 127.6809)),
    CityConfig("bangkok", "Bangkok", "Thailand", "TH", ("th", "en"), (13.7563, 100.5018)),
    CityConfig("chiang-mai", "Chiang Mai", "Thailand", "TH", ("th", "en"), (18.7883, 98.9853)),
    CityConfig("singapore", "Singapore", "Singapore", "SG", ("en", "zh", "ms", "ta"), (1.3521, 103.8198)),
    CityConfig("taipei", "Taipei", "Taiwan", "TW", ("zh", "en"), (25.0330, 121.5654)),
    CityConfig("hong-kong", "Hong Kong", "Hong Kong", "HK", ("zh", "en"), (22.3193, 114.1694)),
    CityConfig("hanoi", "Hanoi", "Vietnam", "VN", ("vi", "en"), (21.0278, 105.8342)),
    CityConfig("ho-chi-minh", "Ho Chi Minh City", "Vietnam", "VN", ("vi", "en"), (10.8231, 106.6297)),
    CityConfig("da-nang", "Da Nang", "Vietnam", "VN", ("vi", "en"), (16.0544, 108.2022)),
    CityConfig("kuala-lumpur", "Kuala Lumpur", "Malaysia", "MY", ("ms", "en", "zh"), (3.1390, 101.6869)),
    CityConfig("penang", "Penang", "Malaysia", "MY", ("ms", "en", "zh"), (5.4141, 100.3288)),
    CityConfig("bali-ubud", "Ubud, Bali", "Indonesia", "ID", ("id", "en"), (-8.5069, 115.2625)),
    CityConfig("bali-canggu", "Canggu, Bali", "Indonesia", "ID", ("id", "en"), (-8.6478, 115.1385)),
)

_BY_SLUG: Dict[str, CityConfig] = {c.slug: c for c in CITIES}
_BY_NAME: Dict[str, CityConfig] = {c.name.lower(): c for c in CITIES}


def get_city_by_slug(slug: str) -> Optional[CityConfig]:
    return _BY_SLUG.get(slug)


def get_city_by_name(name: str) -> Optional[CityConfig]:
    return _BY_NAME.get(name.strip().lower())


def resolve_city(city: Optional[str]) -> Optional[CityConfig]:
    """Accepts a slug ("hong-kong") or a display name ("Hong Kong", any case)."""
    if not city:
        return None
    slug = re.sub(r"\s+", "-", city.strip().lower())
    return get_city_by_slug(slug) or get_city_by_name(city)


def infer_city_from_address(address: str) -> Optional[CityConfig]:
    lowered = address.lower()
    for city in CITIES:
        if city.name.lower() in lowered:
            return city
    return None


def is_korean_city(city: Optional[str]) -> bool:
    config = resolve_city(city)
    return config is not None and config.country_code == "KR"


def local_language(city: Optional[str]) -> Optional[str]:
    config = resolve_city(city)
    return config.local_language if config else None
