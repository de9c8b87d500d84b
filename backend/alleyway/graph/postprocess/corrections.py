import logging
from typing import Any, Dict, Optional

from alleyway.models.entities import Activity, GeneratedItinerary

logger = logging.getLogger(__name__)

# Supervisors may only touch descriptive fields, never coordinates.
CORRECTABLE_FIELDS = {
    "time", "type", "name", "address", "description",
    "category", "localleyScore", "duration", "cost",
}


def apply_corrections(itinerary: GeneratedItinerary, corrections: Optional[Dict[str, Any]]) -> GeneratedItinerary:
    """
    Return a corrected deep copy of itinerary.

    corrections = {"activities": [{"dayIndex": 1, "activityIndex": 0, "name": "..."}]}
    Each entry is merged field by field into the addressed activity; fields it does
    not mention are left as they were. The input itinerary is never mutated.
    """
    corrected = itinerary.model_copy(deep=True)
    if not corrections:
        return corrected

    entries = corrections.get("activities") or []
    applied = 0
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        day_index = entry.get("dayIndex")
        activity_index = entry.get("activityIndex")
        if not isinstance(day_index, int) or not isinstance(activity_index, int):
            logger.warning("Skipping correction without integer indices: %s", entry)
            continue
        if not (0 <= day_index < len(corrected.daily_plans)):
            logger.warning("Skipping correction for missing day %d", day_index)
            continue
        activities = corrected.daily_plans[day_index].activities
        if not (0 <= activity_index < len(activities)):
            logger.warning("Skipping correction for missing activity %d/%d", day_index, activity_index)
            continue

        updates = {k: v for k, v in entry.items() if k in CORRECTABLE_FIELDS}
        if not updates:
            continue
        current = activities[activity_index]
        merged = {**current.model_dump(by_alias=True), **updates}
        try:
            activities[activity_index] = Activity.model_validate(merged)
            applied += 1
        except ValueError as e:
            logger.warning("Rejected correction at %d/%d: %s", day_index, activity_index, e)

    logger.info("Applied %d of %d supervisor corrections", applied, len(entries))
    return corrected
