"""
Geocoding package for Alleyway.

Attaches coordinates to itinerary activities through a cascade of region-aware
backends with bilingual query translation and a distance sanity check.
"""

from .batch import (
    FixedDelayPacer,
    batch_geocode,
    geocode_itinerary,
    geocode_itinerary_sync,
)
from .cities import CityConfig, is_korean_city, local_language, resolve_city
from .resolver import GeocodingResolver, distance_km, simplify_address
from .translation import NO_TRANSLATION, TranslationCache, Translator

__all__ = [
    'FixedDelayPacer',
    'batch_geocode',
    'geocode_itinerary',
    'geocode_itinerary_sync',
    'CityConfig',
    'is_korean_city',
    'local_language',
    'resolve_city',
    'GeocodingResolver',
    'distance_km',
    'simplify_address',
    'NO_TRANSLATION',
    'TranslationCache',
    'Translator',
]
