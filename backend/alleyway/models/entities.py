# alleyway/models/entities.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional

ITINERARY_SCHEMA_VERSION = "1"

ACTIVITY_CATEGORIES = (
    "restaurant", "cafe", "bar", "market", "temple",
    "park", "museum", "shopping", "attraction", "neighborhood",
)

ActivityCategory = Literal[
    "restaurant", "cafe", "bar", "market", "temple",
    "park", "museum", "shopping", "attraction", "neighborhood",
]
TimeOfDay = Literal["morning", "afternoon", "evening"]


class Activity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time: str = ""
    type: TimeOfDay = "morning"
    name: str
    address: str = ""
    description: str = ""
    category: ActivityCategory = "attraction"
    localley_score: int = Field(default=3, ge=1, le=6, alias="localleyScore")
    duration: str = ""
    cost: str = ""
    # Filled in by geocoding, never by the generator
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("type", "category", mode="before")
    @classmethod
    def _lowercase(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class DailyPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: int = Field(ge=1)
    theme: str = ""
    activities: List[Activity] = Field(default_factory=list)
    local_tip: str = Field(default="", alias="localTip")
    transport_tip: str = Field(default="", alias="transportTips")


class GeneratedItinerary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    subtitle: str = ""
    city: str = ""
    days: int = 0
    local_score: int = Field(default=5, ge=1, le=10, alias="localScore")
    estimated_cost: str = Field(default="", alias="estimatedCost")
    highlights: List[str] = Field(default_factory=list)
    daily_plans: List[DailyPlan] = Field(default_factory=list, alias="dailyPlans")

    def iter_activities(self):
        """Yield (day_index, activity_index, activity) over every day, in order."""
        for day_index, plan in enumerate(self.daily_plans):
            for activity_index, activity in enumerate(plan.activities):
                yield day_index, activity_index, activity

    def to_wire(self) -> dict:
        """Provider-facing JSON shape (camelCase keys)."""
        return self.model_dump(by_alias=True, mode="json")
