import logging
from typing import Any

from pydantic import ValidationError

from alleyway.integrations.errors import ItineraryStructureError
from alleyway.models.entities import Activity, GeneratedItinerary

logger = logging.getLogger(__name__)

PLACEHOLDER_NAMES = frozenset({"Location", "Breakfast", "Lunch", "Dinner", "What to Order"})


def parse_itinerary(provider: str, data: Any) -> GeneratedItinerary:
    """Validate parsed provider JSON against the itinerary schema."""
    if not isinstance(data, dict):
        raise ItineraryStructureError(provider, f"Expected an itinerary object, got {type(data).__name__}")
    try:
        return GeneratedItinerary.model_validate(data)
    except ValidationError as e:
        raise ItineraryStructureError(provider, f"Itinerary does not match schema: {e.error_count()} errors", cause=e) from e


def parse_activity(provider: str, data: Any) -> Activity:
    if isinstance(data, dict) and isinstance(data.get("activity"), dict):
        data = data["activity"]
    try:
        activity = Activity.model_validate(data)
    except ValidationError as e:
        raise ItineraryStructureError(provider, "Activity does not match schema", cause=e) from e
    if is_placeholder_name(activity.name):
        raise ItineraryStructureError(provider, f'Invalid activity name: "{activity.name}"')
    return activity


def is_placeholder_name(name: str) -> bool:
    return not name or not name.strip() or name.strip() in PLACEHOLDER_NAMES


def validate_itinerary_structure(itinerary: GeneratedItinerary, provider: str = "openai") -> None:
    """
    Reject drafts the pipeline must never return:
    - missing title or no daily plans
    - a day with no activities
    - an activity whose name is empty or a placeholder
    """
    if not itinerary.title or not itinerary.daily_plans:
        raise ItineraryStructureError(provider, "Invalid itinerary structure: missing title or dailyPlans")

    for plan in itinerary.daily_plans:
        if not plan.activities:
            raise ItineraryStructureError(provider, f"Day {plan.day} has no activities")
        for activity in plan.activities:
            if is_placeholder_name(activity.name):
                raise ItineraryStructureError(provider, f'Invalid activity name: "{activity.name}"')
