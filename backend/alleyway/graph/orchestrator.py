import logging
import time
from typing import Iterable, Optional, Union

from alleyway.config import Settings, get_settings
from alleyway.graph.build_graph import build_graph
from alleyway.graph.state import OrchestrationResult, RunState
from alleyway.graph.tiers import tier_config
from alleyway.integrations.errors import ProviderError, ProviderNotAvailableError
from alleyway.integrations.registry import ProviderRegistry, get_registry
from alleyway.models.entities import Activity
from alleyway.models.review import SingleActivityRequest, VerifiedSpot
from alleyway.models.trip_parameters import TripParameters

logger = logging.getLogger(__name__)


class ItineraryOrchestrator:
    """
    Drives one itinerary request through drafting, optional location
    cross-validation, supervision and finalization.

    Provider errors that survive their retries are re-raised with `stage` set;
    a result is only returned for a complete, structurally valid itinerary.
    """

    def __init__(self, registry: Optional[ProviderRegistry] = None, settings: Optional[Settings] = None):
        self.registry = registry or get_registry()
        self.settings = settings or get_settings()
        self._graph = build_graph(self.registry, self.settings)

    def generate(
        self,
        params: TripParameters,
        tier: str = "free",
        verified_spots: Iterable[Union[VerifiedSpot, dict]] = (),
    ) -> OrchestrationResult:
        config = tier_config(tier)
        state = RunState(
            params=params,
            tier=config.name,
            review_level=config.review_level,
            validate_locations=config.validate_locations,
            verified_spots=[VerifiedSpot.model_validate(s) for s in verified_spots],
        )

        logger.info("Generating %d-day itinerary for %s (tier=%s)", params.days, params.city, tier)
        start = time.perf_counter()
        try:
            out = self._graph.invoke(state)
        except ProviderError as e:
            logger.error("Itinerary pipeline failed at %s: %s", e.stage or "unknown stage", e)
            raise

        final = RunState.model_validate(dict(out)) if isinstance(out, dict) else out
        final.metrics.total_latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Itinerary ready in %dms (providers=%s, retries=%d)",
            final.metrics.total_latency_ms,
            ",".join(final.metrics.providers_used),
            final.metrics.retry_count,
        )

        return OrchestrationResult(
            itinerary=final.itinerary,
            supervision=final.supervision,
            validation=final.validation,
            tier=final.tier,
            metrics=final.metrics,
            logs=final.logs,
        )

    def regenerate_activity(self, request: SingleActivityRequest) -> Activity:
        """Produce one replacement activity; used by callers reacting to a non-approved review."""
        generator = self.registry.generation
        if not generator.is_available():
            raise ProviderNotAvailableError(generator.name)
        activity = generator.generate_single_activity(request)
        if activity.name in request.exclude_names:
            logger.warning("Replacement activity %r is excluded; asking once more", activity.name)
            activity = generator.generate_single_activity(request)
        return activity
