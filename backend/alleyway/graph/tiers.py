from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class TierConfig:
    name: str
    validate_locations: bool
    review_level: str  # "quick" | "full"


TIERS: Dict[str, TierConfig] = {
    "free": TierConfig("free", validate_locations=False, review_level="quick"),
    "pro": TierConfig("pro", validate_locations=True, review_level="quick"),
    "premium": TierConfig("premium", validate_locations=True, review_level="full"),
}


def tier_config(tier: str) -> TierConfig:
    try:
        return TIERS[tier]
    except KeyError:
        raise ValueError(f"Unknown account tier {tier!r}; expected one of {sorted(TIERS)}") from None
