from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from alleyway.models.entities import GeneratedItinerary
from alleyway.models.review import SupervisionResult, ValidationResult, VerifiedSpot
from alleyway.models.trip_parameters import TripParameters

STAGES = ("drafting", "validating_locations", "supervising", "finalizing", "done", "error")


class OrchestrationMetrics(BaseModel):
    total_latency_ms: int = 0
    drafting_latency_ms: int = 0
    validation_latency_ms: int = 0
    supervision_latency_ms: int = 0
    providers_used: List[str] = Field(default_factory=list)
    retry_count: int = 0


class RunState(BaseModel):
    params: TripParameters
    tier: str = "free"
    review_level: str = "quick"
    validate_locations: bool = False
    verified_spots: List[VerifiedSpot] = Field(default_factory=list)

    stage: str = "drafting"
    draft: Optional[GeneratedItinerary] = None
    validation: List[ValidationResult] = Field(default_factory=list)
    supervision: Optional[SupervisionResult] = None
    itinerary: Optional[GeneratedItinerary] = None

    metrics: OrchestrationMetrics = Field(default_factory=OrchestrationMetrics)
    logs: List[Dict[str, Any]] = Field(default_factory=list)
    done: bool = False


class OrchestrationResult(BaseModel):
    itinerary: GeneratedItinerary
    supervision: Optional[SupervisionResult] = None
    validation: List[ValidationResult] = Field(default_factory=list)
    tier: str
    metrics: OrchestrationMetrics
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def approved(self) -> bool:
        return bool(self.supervision and self.supervision.approved)

    @property
    def issues(self):
        return self.supervision.issues if self.supervision else []
