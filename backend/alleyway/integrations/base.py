"""
Shared provider plumbing.

Capabilities are described as Protocols so the orchestrator only depends on
what a role needs (generate, validate, supervise, draw). BaseProvider carries
the health bookkeeping every concrete client shares; TextProvider adds the
generate_text/generate_json pair on top of a single vendor hook, _complete().
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from alleyway.integrations.errors import JSONParseError, ProviderError, ProviderNotAvailableError
from alleyway.models.entities import Activity, GeneratedItinerary
from alleyway.models.review import (
    FactCheckResult,
    GeneratedImage,
    LocationToVerify,
    ProviderStatus,
    SingleActivityRequest,
    SupervisionResult,
    TextGenerationResult,
    TokenUsage,
    ValidationResult,
    VerifiedSpot,
)
from alleyway.models.trip_parameters import TripParameters

logger = logging.getLogger(__name__)

DEFAULT_UNHEALTHY_THRESHOLD = 5


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

@runtime_checkable
class Provider(Protocol):
    name: str

    def is_available(self) -> bool: ...

    def health_check(self) -> bool: ...

    def get_status(self) -> ProviderStatus: ...


@runtime_checkable
class TextGenerationProvider(Provider, Protocol):
    def generate_text(self, system_prompt: str, user_prompt: str, **options) -> TextGenerationResult: ...

    def generate_json(self, system_prompt: str, user_prompt: str, **options) -> Any: ...


@runtime_checkable
class ItineraryGenerator(TextGenerationProvider, Protocol):
    def generate_itinerary(self, params: TripParameters) -> GeneratedItinerary: ...

    def generate_single_activity(self, request: SingleActivityRequest) -> Activity: ...


@runtime_checkable
class LocationValidator(Provider, Protocol):
    def validate_locations(
        self, city: str, locations: Optional[Sequence[LocationToVerify]] = None
    ) -> List[ValidationResult]: ...


@runtime_checkable
class ImageGenerator(Provider, Protocol):
    def generate_image(self, prompt: str, aspect_ratio: Optional[str] = None) -> GeneratedImage: ...


@runtime_checkable
class Supervisor(TextGenerationProvider, Protocol):
    def supervise(
        self,
        itinerary: GeneratedItinerary,
        location_data: Sequence[ValidationResult],
        verified_spots: Sequence[VerifiedSpot],
        level: str = "full",
    ) -> SupervisionResult: ...

    def fact_check(self, city: str, locations: Sequence[LocationToVerify]) -> FactCheckResult: ...


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------

def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json / ``` fence, if any."""
    text = content.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_json_content(provider: str, content: str) -> Any:
    try:
        return json.loads(strip_code_fences(content))
    except (json.JSONDecodeError, TypeError) as e:
        raise JSONParseError(provider, content, cause=e) from e


# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------

class BaseProvider(ABC):
    """Availability comes from configuration, health from runtime outcomes."""

    name: str = "provider"

    def __init__(self, unhealthy_threshold: int = DEFAULT_UNHEALTHY_THRESHOLD):
        self.unhealthy_threshold = unhealthy_threshold
        self.error_count = 0
        self.healthy = True
        self.last_health_check: Optional[datetime] = None

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def _ping(self) -> None:
        """Cheapest round trip the vendor offers; raise on failure."""

    def health_check(self) -> bool:
        if not self.is_available():
            self.last_health_check = datetime.now(timezone.utc)
            return False
        try:
            self._ping()
            self.record_success()
        except Exception as e:
            logger.warning("Health check failed for %s: %s", self.name, e)
            self.healthy = False
        self.last_health_check = datetime.now(timezone.utc)
        return self.healthy

    def get_status(self) -> ProviderStatus:
        return ProviderStatus(
            name=self.name,
            available=self.is_available(),
            healthy=self.healthy,
            last_health_check=self.last_health_check,
            error_count=self.error_count,
        )

    def record_success(self) -> None:
        self.error_count = 0
        self.healthy = True

    def record_error(self) -> None:
        self.error_count += 1
        if self.error_count >= self.unhealthy_threshold:
            if self.healthy:
                logger.warning("%s marked unhealthy after %d consecutive errors", self.name, self.error_count)
            self.healthy = False

    def _require_available(self) -> None:
        if not self.is_available():
            raise ProviderNotAvailableError(self.name)


class TextProvider(BaseProvider):
    default_temperature = 0.8
    default_max_tokens = 3000

    @abstractmethod
    def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> Tuple[str, TokenUsage]:
        """Single vendor call returning (content, usage)."""

    def _translate_error(self, exc: Exception) -> ProviderError:
        """Map a vendor exception onto the shared taxonomy."""
        return ProviderError(self.name, "Failed to generate text", cause=exc)

    def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> TextGenerationResult:
        self._require_available()
        start = time.perf_counter()
        try:
            content, usage = self._complete(
                system_prompt,
                user_prompt,
                self.default_temperature if temperature is None else temperature,
                max_tokens or self.default_max_tokens,
                json_mode,
            )
        except ProviderError:
            self.record_error()
            raise
        except Exception as e:
            self.record_error()
            raise self._translate_error(e) from e
        self.record_success()
        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "%s completion: %d tokens in %dms", self.name, usage.total_tokens, latency_ms
        )
        return TextGenerationResult(content=content or "", usage=usage, latency_ms=latency_ms, provider=self.name)

    def generate_json(self, system_prompt: str, user_prompt: str, **options) -> Any:
        result = self.generate_text(system_prompt, user_prompt, json_mode=True, **options)
        return parse_json_content(self.name, result.content)


def retry_after_from_response(exc: Exception) -> Optional[float]:
    """Read a Retry-After header off an SDK exception that carries an HTTP response."""
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
