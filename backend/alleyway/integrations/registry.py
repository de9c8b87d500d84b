import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from alleyway.config import Settings, get_settings
from alleyway.integrations.base import ItineraryGenerator, LocationValidator, Supervisor
from alleyway.models.review import ProviderStatus

logger = logging.getLogger(__name__)

ROLES = ("generation", "validation", "supervision")


@dataclass
class ProviderRegistry:
    """One provider per pipeline role. Lives for the lifetime of the process."""

    generation: ItineraryGenerator
    validation: LocationValidator
    supervision: Supervisor

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ProviderRegistry":
        from alleyway.integrations.claude_client import SupervisoryProvider
        from alleyway.integrations.gemini_client import CrossValidationProvider
        from alleyway.integrations.openai_client import GenerationProvider

        settings = settings or get_settings()
        registry = cls(
            generation=GenerationProvider(settings),
            validation=CrossValidationProvider(settings),
            supervision=SupervisoryProvider(settings),
        )
        for status in registry.statuses():
            if not status.available:
                logger.warning("Provider %s is not configured", status.name)
        return registry

    def get(self, role: str):
        if role not in ROLES:
            raise KeyError(f"Unknown provider role {role!r}")
        return getattr(self, role)

    def statuses(self) -> List[ProviderStatus]:
        return [self.get(role).get_status() for role in ROLES]

    def health_check_all(self) -> Dict[str, bool]:
        return {role: self.get(role).health_check() for role in ROLES}


_registry: Optional[ProviderRegistry] = None


def get_registry() -> ProviderRegistry:
    global _registry
    if _registry is None:
        _registry = ProviderRegistry.from_settings()
    return _registry
