from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

BudgetTier = Literal["economy", "moderate", "premium"]
Pace = Literal["relaxed", "moderate", "active", "packed"]


class TripParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str = Field(min_length=1)
    days: int = Field(ge=1, le=30)
    interests: List[str] = []
    budget: BudgetTier = "moderate"
    localness_level: int = Field(default=3, ge=1, le=5)
    pace: Pace = "moderate"
    group_type: str = "solo"
    template_prompt: Optional[str] = None
