from typing import Literal, Optional
from pydantic import BaseModel, Field

GeocodingProvider = Literal["kakao", "nominatim", "google"]


class GeocodingResult(BaseModel):
    lat: float
    lng: float
    provider: GeocodingProvider


class BatchGeocodingItem(BaseModel):
    address: str = ""
    city: str
    name: Optional[str] = None


class BatchGeocodingReport(BaseModel):
    """Tally for one itinerary pass. Activities that already had coordinates count as geocoded too."""
    geocoded: int = 0
    failed: int = 0
    skipped: int = 0
    elapsed_ms: int = 0
    failures: list = Field(default_factory=list)
