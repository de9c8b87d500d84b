import json
import logging
import sys

from alleyway.geocoding.batch import geocode_itinerary_sync
from alleyway.graph.orchestrator import ItineraryOrchestrator
from alleyway.models.trip_parameters import TripParameters


def format_result(result, report=None) -> dict:
    return {
        "itinerary": result.itinerary.to_wire(),
        "approved": result.approved,
        "issues": [i.model_dump(by_alias=True) for i in result.issues],
        "metrics": result.metrics.model_dump(),
        "geocoding": report.model_dump() if report else None,
        "logs": result.logs,
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    city = sys.argv[1] if len(sys.argv) > 1 else "Seoul"
    params = TripParameters(
        city=city,
        days=3,
        interests=["street food", "coffee", "vintage shopping"],
        budget="moderate",
        localness_level=4,
        pace="moderate",
    )
    result = ItineraryOrchestrator().generate(params, tier="pro")
    report = geocode_itinerary_sync(result.itinerary)
    print(json.dumps(format_result(result, report), indent=2, ensure_ascii=False, default=str))
