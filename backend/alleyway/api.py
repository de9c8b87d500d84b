from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional
from pydantic import BaseModel, Field
from alleyway.geocoding.batch import batch_geocode, default_pacer, geocode_itinerary_sync
from alleyway.geocoding.resolver import GeocodingResolver
from alleyway.graph.orchestrator import ItineraryOrchestrator
from alleyway.integrations.errors import ProviderError, ProviderNotAvailableError, RateLimitError
from alleyway.integrations.registry import ProviderRegistry, get_registry
from alleyway.models.geocoding import BatchGeocodingItem
from alleyway.models.review import VerifiedSpot
from alleyway.models.trip_parameters import TripParameters
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Alleyway Backend API",
    description="Local-first itinerary generation with multi-provider review and geocoding",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_orchestrator: Optional[ItineraryOrchestrator] = None
_resolver: Optional[GeocodingResolver] = None


def get_orchestrator() -> ItineraryOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ItineraryOrchestrator()
    return _orchestrator


def get_resolver() -> GeocodingResolver:
    global _resolver
    if _resolver is None:
        _resolver = GeocodingResolver.from_settings()
    return _resolver


class GenerateRequest(TripParameters):
    tier: str = "free"
    verified_spots: List[VerifiedSpot] = []
    geocode: bool = True


class GenerateResponse(BaseModel):
    itinerary: dict
    approved: bool
    issues: List[dict] = []
    supervision: Optional[dict] = None
    metrics: dict
    logs: List[dict] = []
    tier: str
    geocoding: Optional[dict] = None


class GeocodeRequest(BatchGeocodingItem):
    pass


class BatchGeocodeRequest(BaseModel):
    items: List[BatchGeocodingItem] = Field(default_factory=list, max_length=100)


def _provider_error_response(e: ProviderError) -> HTTPException:
    detail = {"stage": e.stage, "provider": e.provider, "message": e.message}
    if isinstance(e, ProviderNotAvailableError):
        return HTTPException(status_code=503, detail=detail)
    if isinstance(e, RateLimitError):
        return HTTPException(status_code=429, detail=detail)
    return HTTPException(status_code=502, detail=detail)


@app.get("/")
def root():
    return {
        "message": "Alleyway Backend API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "generate": "/itineraries/generate",
            "geocode": "/geocode",
            "docs": "/docs"
        }
    }


@app.get("/health")
def health(registry: ProviderRegistry = Depends(get_registry)):
    statuses = registry.statuses()
    return {
        "status": "healthy" if all(s.healthy for s in statuses if s.available) else "degraded",
        "service": "Alleyway Backend",
        "providers": [s.model_dump(mode="json") for s in statuses],
    }


@app.post("/itineraries/generate", response_model=GenerateResponse)
def generate_itinerary(
    request: GenerateRequest,
    orchestrator: ItineraryOrchestrator = Depends(get_orchestrator),
    resolver: GeocodingResolver = Depends(get_resolver),
):
    """
    Generate a reviewed itinerary.

    - **city**, **days**, **interests**, **budget**, **localness_level**, **pace**, **group_type**
    - **tier**: "free", "pro" or "premium"; selects cross-validation and review depth
    - **verified_spots**: curated places passed to the reviewer as grounding
    - **geocode**: attach coordinates to activities after generation
    """
    params = TripParameters.model_validate(request.model_dump(exclude={"tier", "verified_spots", "geocode"}))
    try:
        result = orchestrator.generate(params, tier=request.tier, verified_spots=request.verified_spots)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        raise _provider_error_response(e)

    report = None
    if request.geocode:
        report = geocode_itinerary_sync(result.itinerary, resolver)

    logger.info(f"Itinerary generated for {params.city}: approved={result.approved}, issues={len(result.issues)}")

    return GenerateResponse(
        itinerary=result.itinerary.to_wire(),
        approved=result.approved,
        issues=[i.model_dump(by_alias=True, mode="json") for i in result.issues],
        supervision=result.supervision.model_dump(by_alias=True, mode="json", exclude={"final_itinerary"}) if result.supervision else None,
        metrics=result.metrics.model_dump(),
        logs=result.logs,
        tier=result.tier,
        geocoding=report.model_dump() if report else None,
    )


@app.post("/geocode")
async def geocode(request: GeocodeRequest, resolver: GeocodingResolver = Depends(get_resolver)):
    result = await resolver.resolve(request.address, request.city, request.name)
    return {"result": result.model_dump() if result else None}


@app.post("/geocode/batch")
async def geocode_batch(request: BatchGeocodeRequest, resolver: GeocodingResolver = Depends(get_resolver)):
    results = await batch_geocode(request.items, resolver, default_pacer())
    return {"results": [r.model_dump() if r else None for r in results]}
