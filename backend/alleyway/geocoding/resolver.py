import asyncio
import logging
import re
from typing import List, Optional, Sequence, Tuple

from geopy.distance import great_circle

from alleyway.config import Settings, get_settings
from alleyway.geocoding.backends import Center, GeocodingBackend, default_backends
from alleyway.geocoding.cities import resolve_city
from alleyway.geocoding.translation import TranslationCache, Translator
from alleyway.models.geocoding import GeocodingResult

logger = logging.getLogger(__name__)

_SIMPLIFY_RULES = (
    # Taipei-style lane/section/alley numbering
    (re.compile(r"^No\.\s*\d+,?\s*", re.I), ""),
    (re.compile(r"Lane\s*\d+,?\s*", re.I), ""),
    (re.compile(r"Section\s*\d+,?\s*", re.I), ""),
    (re.compile(r"Alley\s*\d+,?\s*", re.I), ""),
    # floor / unit / suite
    (re.compile(r"\b\d+[FfBb]?\s*(Floor|Fl|층)\b", re.I), ""),
    (re.compile(r"\bUnit\s*\d+\b", re.I), ""),
    (re.compile(r"\bSuite\s*\d+\b", re.I), ""),
    # leading building numbers
    (re.compile(r"^\d+[-–]\d+\s*"), ""),
    (re.compile(r"^\d+\s+"), ""),
    # Korean lot numbers
    (re.compile(r"\d+번지"), ""),
    (re.compile(r"\d+[-–]\d+번?\s*"), ""),
    # punctuation cleanup
    (re.compile(r",\s*,"), ","),
    (re.compile(r",\s*$"), ""),
    (re.compile(r"^\s*,\s*"), ""),
    (re.compile(r"\s+"), " "),
)


def simplify_address(address: str) -> str:
    """Strip building, unit, floor, lane and section numbers; keep place, district and city."""
    simplified = address or ""
    for pattern, replacement in _SIMPLIFY_RULES:
        simplified = pattern.sub(replacement, simplified)
    simplified = simplified.strip()
    if len(simplified) < 3:
        return address
    return simplified


def distance_km(a: Center, b: Center) -> float:
    return great_circle(a, b).km


def _unique(queries: Sequence[Optional[str]]) -> List[str]:
    seen = []
    for q in queries:
        if q and q.strip() and q not in seen:
            seen.append(q)
    return seen


class GeocodingResolver:
    """
    Resolves one activity address to coordinates by trying backends in order:
    regional (Korea only) -> open data -> commercial. Each backend is tried with
    several query variants; the first result within max_distance_km of the
    city's reference center wins.
    """

    def __init__(
        self,
        regional: GeocodingBackend,
        open_data: GeocodingBackend,
        commercial: GeocodingBackend,
        translator: Optional[Translator] = None,
        max_distance_km: float = 50.0,
    ):
        self.regional = regional
        self.open_data = open_data
        self.commercial = commercial
        self.translator = translator
        self.max_distance_km = max_distance_km

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        translator: Optional[Translator] = None,
        cache: Optional[TranslationCache] = None,
    ) -> "GeocodingResolver":
        """The translation cache lives as long as the resolver; share one resolver per process."""
        settings = settings or get_settings()
        regional, open_data, commercial = default_backends(settings)
        if translator is None and settings.translation_enabled:
            translator = Translator(settings, cache=cache)
        return cls(regional, open_data, commercial, translator, settings.max_distance_km)

    def is_near(self, result: GeocodingResult, center: Optional[Center]) -> bool:
        if center is None:
            return True
        dist = distance_km((result.lat, result.lng), center)
        if dist > self.max_distance_km:
            logger.warning(
                "Rejected %s result %.1fkm from city center (max %.0fkm)",
                result.provider, dist, self.max_distance_km,
            )
            return False
        return True

    async def _translate(self, place_name: Optional[str], simplified: str, lang: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        if not lang or self.translator is None:
            return None, None
        if simplified == place_name:
            name = await asyncio.to_thread(self.translator.translate, place_name, lang)
            return name, name
        name, addr = await asyncio.gather(
            asyncio.to_thread(self.translator.translate, place_name, lang),
            asyncio.to_thread(self.translator.translate, simplified, lang),
        )
        return name, addr

    def cascade(
        self,
        address: str,
        city: str,
        place_name: Optional[str],
        simplified: str,
        translated_name: Optional[str],
        translated_address: Optional[str],
        korean: bool,
    ) -> List[Tuple[GeocodingBackend, List[str]]]:
        """The ordered (backend, query variants) plan for one resolution."""
        name_and_city = f"{place_name}, {city}" if place_name else None
        translated_name_city = f"{translated_name} {city}" if translated_name else None
        simplified_city = f"{simplified}, {city}" if simplified else None

        plan = []
        if korean and self.regional.is_available():
            plan.append((self.regional, _unique([
                translated_name,
                translated_address,
                address,
                simplified,
                name_and_city,
                place_name,
            ])))
        if self.open_data.is_available():
            plan.append((self.open_data, _unique([
                translated_name_city,
                name_and_city or simplified_city,
                name_and_city,
            ])))
        if self.commercial.is_available():
            plan.append((self.commercial, _unique([
                name_and_city or (f"{address}, {city}" if address else None),
                translated_name_city,
                f"{place_name} {city}" if place_name else None,
            ])))
        return plan

    async def resolve(self, address: str, city: str, place_name: Optional[str] = None) -> Optional[GeocodingResult]:
        config = resolve_city(city)
        center = config.center if config else None
        lang = config.local_language if config else None
        korean = config is not None and config.country_code == "KR"
        if config is None:
            logger.info("No reference center for %r; distance check disabled", city)

        simplified = simplify_address(address or "")
        translated_name, translated_address = await self._translate(place_name, simplified, lang)

        for backend, queries in self.cascade(
            address or "", city, place_name, simplified, translated_name, translated_address, korean
        ):
            for query in queries:
                result = await asyncio.to_thread(backend.geocode, query, center)
                if result is not None and self.is_near(result, center):
                    logger.debug("Geocoded %r via %s (%r)", place_name or address, backend.name, query)
                    return result

        logger.info("No geocoding result for %r in %s", place_name or address, city)
        return None

    def resolve_sync(self, address: str, city: str, place_name: Optional[str] = None) -> Optional[GeocodingResult]:
        return asyncio.run(self.resolve(address, city, place_name))
