import logging
import random
import time
from typing import Callable, List, TypeVar

from alleyway.config import Settings
from alleyway.graph.postprocess.corrections import apply_corrections
from alleyway.graph.postprocess.structure import validate_itinerary_structure
from alleyway.graph.state import RunState
from alleyway.integrations.errors import (
    ItineraryStructureError,
    ProviderError,
    ProviderNotAvailableError,
    RateLimitError,
)
from alleyway.integrations.registry import ProviderRegistry
from alleyway.models.entities import GeneratedItinerary
from alleyway.models.review import LocationToVerify

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_JITTER = 0.3


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def backoff_delay(attempt: int, settings: Settings) -> float:
    """Exponential delay before retry number `attempt` (1-based), capped, with +/-30% jitter."""
    delay = min(settings.retry_base_delay_s * 2 ** (attempt - 1), settings.retry_max_delay_s)
    return max(0.0, delay * random.uniform(1 - BACKOFF_JITTER, 1 + BACKOFF_JITTER))


def _call_with_retry(
    state: RunState,
    stage: str,
    fn: Callable[[], T],
    settings: Settings,
    retry_structure_errors: bool = False,
) -> T:
    """
    Run fn, retrying retryable provider errors up to settings.pipeline_max_retries times.
    Structure errors are not retryable by default; drafting opts in.
    The error that finally escapes is stamped with the stage it came from.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except ProviderError as e:
            retryable = e.retryable or (retry_structure_errors and isinstance(e, ItineraryStructureError))
            if not retryable or attempt >= settings.pipeline_max_retries:
                e.stage = stage
                state.stage = "error"
                state.logs.append({"stage": stage, "message": f"Failed: {e}", "error": type(e).__name__})
                raise
            attempt += 1
            state.metrics.retry_count += 1
            wait = backoff_delay(attempt, settings)
            if isinstance(e, RateLimitError) and e.retry_after_s:
                wait = min(e.retry_after_s, settings.rate_limit_max_wait_s)
            logger.warning("%s attempt %d failed (%s); retrying in %.1fs", stage, attempt, e, wait)
            state.logs.append({"stage": stage, "message": f"Retrying after {type(e).__name__}", "attempt": attempt})
            if wait:
                time.sleep(wait)


def collect_locations(itinerary: GeneratedItinerary) -> List[LocationToVerify]:
    return [
        LocationToVerify(
            name=activity.name,
            address=activity.address or None,
            category=activity.category,
            day_index=day_index,
            activity_index=activity_index,
        )
        for day_index, activity_index, activity in itinerary.iter_activities()
    ]


def drafting(state: RunState, providers: ProviderRegistry, settings: Settings) -> RunState:
    generator = providers.generation
    state.stage = "drafting"
    if not generator.is_available():
        error = ProviderNotAvailableError(generator.name)
        error.stage = "drafting"
        state.stage = "error"
        raise error

    start = time.perf_counter()

    def _draft() -> GeneratedItinerary:
        itinerary = generator.generate_itinerary(state.params)
        validate_itinerary_structure(itinerary, provider=generator.name)
        return itinerary

    state.draft = _call_with_retry(state, "drafting", _draft, settings, retry_structure_errors=True)
    state.metrics.drafting_latency_ms = _elapsed_ms(start)
    state.metrics.providers_used.append(generator.name)

    activity_count = sum(len(plan.activities) for plan in state.draft.daily_plans)
    state.logs.append({
        "stage": "drafting",
        "message": f"Drafted {len(state.draft.daily_plans)} days with {activity_count} activities",
        "provider": generator.name,
    })
    return state


def validating_locations(state: RunState, providers: ProviderRegistry, settings: Settings) -> RunState:
    """Cross-validation is enrichment: any failure leaves state.validation empty."""
    validator = providers.validation
    state.stage = "validating_locations"
    start = time.perf_counter()

    if not validator.is_available():
        logger.warning("Location validator %s not configured; skipping", validator.name)
        state.logs.append({"stage": "validating_locations", "message": "Skipped: validator not configured"})
        return state

    locations = collect_locations(state.draft)
    try:
        state.validation = validator.validate_locations(state.params.city, locations)
        state.metrics.providers_used.append(validator.name)
    except Exception as e:
        logger.warning("Location validation failed, continuing without it: %s", e)
        state.validation = []
        state.logs.append({"stage": "validating_locations", "message": f"Failed, continuing: {e}"})
        return state
    finally:
        state.metrics.validation_latency_ms = _elapsed_ms(start)

    invalid = sum(1 for r in state.validation if r.status == "invalid")
    state.logs.append({
        "stage": "validating_locations",
        "message": f"Checked {len(locations)} locations, {invalid} flagged invalid",
        "count": len(state.validation),
    })
    return state


def supervising(state: RunState, providers: ProviderRegistry, settings: Settings) -> RunState:
    supervisor = providers.supervision
    state.stage = "supervising"
    if not supervisor.is_available():
        error = ProviderNotAvailableError(supervisor.name)
        error.stage = "supervising"
        state.stage = "error"
        raise error

    start = time.perf_counter()
    state.supervision = _call_with_retry(
        state,
        "supervising",
        lambda: supervisor.supervise(
            state.draft,
            state.validation,
            state.verified_spots,
            level=state.review_level,
        ),
        settings,
    )
    state.metrics.supervision_latency_ms = _elapsed_ms(start)
    state.metrics.providers_used.append(supervisor.name)

    state.logs.append({
        "stage": "supervising",
        "message": f"{state.review_level} review: approved={state.supervision.approved}",
        "quality_score": state.supervision.quality_score,
        "issues": len(state.supervision.issues),
    })
    return state


def finalizing(state: RunState, providers: ProviderRegistry, settings: Settings) -> RunState:
    state.stage = "finalizing"
    supervision = state.supervision
    final = state.draft

    if supervision is not None and supervision.has_corrections:
        corrected = apply_corrections(state.draft, supervision.corrections)
        try:
            validate_itinerary_structure(corrected, provider="supervision")
        except ItineraryStructureError as e:
            logger.warning("Discarding corrections that break the itinerary: %s", e)
            state.logs.append({"stage": "finalizing", "message": f"Corrections discarded: {e.message}"})
        else:
            final = corrected
            supervision.final_itinerary = corrected
            state.logs.append({"stage": "finalizing", "message": "Applied supervisor corrections"})

    state.itinerary = final
    state.stage = "done"
    state.done = True
    return state


def route_after_drafting(state: RunState) -> str:
    return "validating_locations" if state.validate_locations else "supervising"
