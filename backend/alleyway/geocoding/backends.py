"""
Geocoding backends tried by the resolver, in cascade order:

- KakaoBackend: Kakao Local keyword search, strong coverage inside South Korea
- NominatimBackend: OpenStreetMap via geopy, soft-biased with a viewbox
- GoogleBackend: Google Geocoding API, last resort, biased with bounds

Backends never raise: vendor failures are logged and reported as no result.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import googlemaps
import requests
from googlemaps.exceptions import ApiError, Timeout, TransportError
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from alleyway.config import Settings, get_settings
from alleyway.models.geocoding import GeocodingResult

logger = logging.getLogger(__name__)

Center = Tuple[float, float]

KAKAO_KEYWORD_URL = "https://dapi.kakao.com/v2/local/search/keyword.json"


class GeocodingBackend(ABC):
    name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def geocode(self, query: str, center: Optional[Center] = None) -> Optional[GeocodingResult]:
        ...


class KakaoBackend(GeocodingBackend):
    name = "kakao"

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None, timeout: float = 10):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def is_available(self) -> bool:
        return bool(self.api_key)

    def geocode(self, query: str, center: Optional[Center] = None) -> Optional[GeocodingResult]:
        # keyword search is national; center is not used
        if not self.api_key or not query:
            return None
        try:
            response = self.session.get(
                KAKAO_KEYWORD_URL,
                params={"query": query, "size": 1},
                headers={"Authorization": f"KakaoAK {self.api_key}"},
                timeout=self.timeout,
            )
            if response.status_code != 200:
                logger.warning("Kakao returned %s for %r", response.status_code, query)
                return None
            documents = response.json().get("documents") or []
            if not documents:
                return None
            doc = documents[0]
            return GeocodingResult(lat=float(doc["y"]), lng=float(doc["x"]), provider="kakao")
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error("Kakao geocoding error for %r: %s", query, e)
            return None


class NominatimBackend(GeocodingBackend):
    name = "nominatim"

    def __init__(self, user_agent: str = "alleyway-geocoder", viewbox_offset_deg: float = 0.5, geolocator=None, timeout: float = 10):
        self.geolocator = geolocator or Nominatim(user_agent=user_agent)
        self.viewbox_offset_deg = viewbox_offset_deg
        self.timeout = timeout

    def is_available(self) -> bool:
        return True

    def geocode(self, query: str, center: Optional[Center] = None) -> Optional[GeocodingResult]:
        if not query:
            return None
        options = {"exactly_one": True, "timeout": self.timeout}
        if center:
            lat, lng = center
            offset = self.viewbox_offset_deg
            # soft bias only: bounded=False keeps results outside the box
            options["viewbox"] = [(lat + offset, lng - offset), (lat - offset, lng + offset)]
            options["bounded"] = False
        try:
            location = self.geolocator.geocode(query, **options)
            if not location:
                return None
            return GeocodingResult(lat=location.latitude, lng=location.longitude, provider="nominatim")
        except GeopyError as e:
            logger.error("Nominatim geocoding error for %r: %s", query, e)
        except Exception as e:
            logger.exception("Unexpected Nominatim failure for %r: %s", query, e)
        return None


class GoogleBackend(GeocodingBackend):
    name = "google"

    def __init__(self, api_key: Optional[str] = None, viewbox_offset_deg: float = 0.5, client: Optional[googlemaps.Client] = None):
        if client is None and api_key:
            client = googlemaps.Client(key=api_key)
        self.client = client
        self.viewbox_offset_deg = viewbox_offset_deg

    def is_available(self) -> bool:
        return self.client is not None

    def geocode(self, query: str, center: Optional[Center] = None) -> Optional[GeocodingResult]:
        if not self.client or not query:
            return None
        kwargs = {}
        if center:
            lat, lng = center
            offset = self.viewbox_offset_deg
            kwargs["bounds"] = {
                "southwest": (lat - offset, lng - offset),
                "northeast": (lat + offset, lng + offset),
            }
        try:
            results = self.client.geocode(query, **kwargs)
            if not results:
                return None
            location = results[0]["geometry"]["location"]
            return GeocodingResult(lat=location["lat"], lng=location["lng"], provider="google")
        except (ApiError, TransportError, Timeout) as e:
            logger.error("Google geocoding error for %r: %s", query, e)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("Malformed Google geocoding response for %r: %s", query, e)
        return None


def default_backends(settings: Optional[Settings] = None) -> Tuple[KakaoBackend, NominatimBackend, GoogleBackend]:
    settings = settings or get_settings()
    return (
        KakaoBackend(settings.kakao_api_key),
        NominatimBackend(settings.nominatim_user_agent, settings.viewbox_offset_deg),
        GoogleBackend(settings.google_maps_api_key, settings.viewbox_offset_deg),
    )
