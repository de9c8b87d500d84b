"""
Types exchanged with the text providers: usage/latency metadata, provider
health, location validation and supervision results.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from alleyway.models.entities import GeneratedItinerary, TimeOfDay


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class TextGenerationResult(BaseModel):
    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    latency_ms: int = 0
    provider: str


class ProviderStatus(BaseModel):
    name: str
    available: bool
    healthy: bool = True
    last_health_check: Optional[datetime] = None
    error_count: int = 0


class LocationToVerify(BaseModel):
    name: str
    address: Optional[str] = None
    category: str = "attraction"
    day_index: Optional[int] = None
    activity_index: Optional[int] = None

    def as_prompt_line(self, position: int) -> str:
        line = f"{position}. {self.name} ({self.category})"
        if self.address:
            line += f" at {self.address}"
        return line


class ValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    status: Literal["verified", "invalid", "uncertain"] = "uncertain"
    confidence: float = 0.0
    corrected_name: Optional[str] = Field(default=None, alias="correctedName")
    corrected_address: Optional[str] = Field(default=None, alias="correctedAddress")
    reason: Optional[str] = None
    possible_matches: List[str] = Field(default_factory=list, alias="possibleMatches")


class FactCheckResult(BaseModel):
    verified: List[ValidationResult] = Field(default_factory=list)
    invalid: List[ValidationResult] = Field(default_factory=list)
    uncertain: List[ValidationResult] = Field(default_factory=list)


class ValidationIssue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = "quality"
    severity: Literal["error", "warning", "info"] = "warning"
    day_index: Optional[int] = Field(default=None, alias="dayIndex")
    activity_index: Optional[int] = Field(default=None, alias="activityIndex")
    message: str = ""
    auto_fixed: bool = Field(default=False, alias="autoFixed")


class RevisionSuggestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day_index: int = Field(alias="dayIndex")
    activity_index: int = Field(alias="activityIndex")
    current_name: str = Field(default="", alias="currentName")
    suggested_action: Literal["replace", "modify", "remove"] = Field(default="modify", alias="suggestedAction")
    reason: str = ""
    replacement: Optional[Dict[str, Any]] = None


class SupervisionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    approved: bool = False
    quality_score: Optional[float] = Field(default=None, alias="qualityScore")
    issues: List[ValidationIssue] = Field(default_factory=list)
    suggestions: List[RevisionSuggestion] = Field(default_factory=list)
    corrections: Optional[Dict[str, Any]] = None
    final_itinerary: Optional[GeneratedItinerary] = None

    @property
    def has_corrections(self) -> bool:
        return bool(self.corrections and self.corrections.get("activities"))


class VerifiedSpot(BaseModel):
    """A curated place from the spots store, passed to supervision as grounding."""
    id: str
    name: str
    localley_score: int = 3
    category: Optional[str] = None
    address: Optional[str] = None


class SingleActivityRequest(BaseModel):
    city: str
    day_theme: str
    time_slot: TimeOfDay
    requirements: str
    exclude_names: List[str] = []
    category: Optional[str] = None


class GeneratedImage(BaseModel):
    image_bytes: bytes
    mime_type: str = "image/png"


__all__ = [
    "FactCheckResult",
    "GeneratedImage",
    "LocationToVerify",
    "ProviderStatus",
    "RevisionSuggestion",
    "SingleActivityRequest",
    "SupervisionResult",
    "TextGenerationResult",
    "TokenUsage",
    "ValidationIssue",
    "ValidationResult",
    "VerifiedSpot",
]
