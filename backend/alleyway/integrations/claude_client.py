"""
Anthropic integration: the supervisory reviewer.

supervise() scores a draft and may return field-level corrections; applying
them is left to the pipeline. fact_check() sorts a location list into
verified / invalid / uncertain without a full review.
"""

import json
import logging
from typing import Optional, Sequence, Tuple

import anthropic
from anthropic import Anthropic
from pydantic import ValidationError

from alleyway.config import Settings, get_settings
from alleyway.integrations.base import TextProvider, parse_json_content, retry_after_from_response
from alleyway.integrations.errors import JSONParseError, ProviderError, RateLimitError
from alleyway.integrations.prompts import (
    FACT_CHECK_SYSTEM_PROMPT,
    FACT_CHECK_USER_TEMPLATE,
    JSON_ONLY_SUFFIX,
    SUPERVISOR_FULL_SYSTEM_PROMPT,
    SUPERVISOR_QUICK_SYSTEM_PROMPT,
)
from alleyway.models.entities import GeneratedItinerary
from alleyway.models.review import (
    FactCheckResult,
    LocationToVerify,
    SupervisionResult,
    TokenUsage,
    ValidationResult,
    VerifiedSpot,
)

logger = logging.getLogger(__name__)

REVIEW_LEVELS = ("quick", "full")


def build_supervision_prompt(
    itinerary: GeneratedItinerary,
    location_data: Sequence[ValidationResult],
    verified_spots: Sequence[VerifiedSpot],
    level: str,
) -> str:
    sections = [
        "## Itinerary to Review",
        "```json",
        json.dumps(itinerary.to_wire(), indent=2, ensure_ascii=False),
        "```",
        "",
    ]
    if location_data:
        sections += [
            "## Location Validation Data",
            "```json",
            json.dumps([r.model_dump(by_alias=True) for r in location_data], indent=2, ensure_ascii=False),
            "```",
            "",
        ]
    if verified_spots:
        sections.append("## Verified Spots from Database")
        sections.append("\n".join(f"- {s.name} (Score: {s.localley_score}/6)" for s in verified_spots))
        sections.append("")

    if level == "full":
        sections.append("Perform FULL quality assurance with detailed issues and suggestions.")
    else:
        sections.append("Perform a QUICK check focusing on critical issues only.")
    return "\n".join(sections)


class SupervisoryProvider(TextProvider):
    name = "claude"
    default_temperature = 0.3
    default_max_tokens = 4000

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Anthropic] = None):
        settings = settings or get_settings()
        super().__init__(unhealthy_threshold=settings.unhealthy_threshold)
        self.model = settings.claude_model
        self.client = client
        if self.client is None and settings.anthropic_api_key:
            self.client = Anthropic(api_key=settings.anthropic_api_key)

    def is_available(self) -> bool:
        return self.client is not None

    def _ping(self) -> None:
        self.client.messages.create(
            model=self.model,
            max_tokens=10,
            messages=[{"role": "user", "content": "ping"}],
        )

    def _complete(self, system_prompt, user_prompt, temperature, max_tokens, json_mode) -> Tuple[str, TokenUsage]:
        message = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        content = "".join(block.text for block in message.content if getattr(block, "type", None) == "text")
        usage = TokenUsage(
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
            total_tokens=message.usage.input_tokens + message.usage.output_tokens,
        )
        return content, usage

    def _translate_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, anthropic.RateLimitError):
            return RateLimitError(self.name, retry_after_s=retry_after_from_response(exc), cause=exc)
        return super()._translate_error(exc)

    def generate_json(self, system_prompt: str, user_prompt: str, **options):
        # No native JSON mode, so ask for it in the system prompt instead
        result = self.generate_text(system_prompt + JSON_ONLY_SUFFIX, user_prompt, **options)
        return parse_json_content(self.name, result.content)

    def supervise(
        self,
        itinerary: GeneratedItinerary,
        location_data: Sequence[ValidationResult] = (),
        verified_spots: Sequence[VerifiedSpot] = (),
        level: str = "full",
    ) -> SupervisionResult:
        if level not in REVIEW_LEVELS:
            raise ValueError(f"Unknown review level {level!r}")
        self._require_available()

        system_prompt = SUPERVISOR_FULL_SYSTEM_PROMPT if level == "full" else SUPERVISOR_QUICK_SYSTEM_PROMPT
        data = self.generate_json(
            system_prompt,
            build_supervision_prompt(itinerary, location_data, verified_spots, level),
            temperature=0.3,
            max_tokens=3000,
        )
        if not isinstance(data, dict):
            raise JSONParseError(self.name, str(data))
        try:
            result = SupervisionResult.model_validate(data)
        except ValidationError as e:
            raise JSONParseError(self.name, json.dumps(data), cause=e) from e

        logger.info(
            "Supervision (%s): approved=%s score=%s issues=%d",
            level, result.approved, result.quality_score, len(result.issues),
        )
        return result

    def fact_check(self, city: str, locations: Sequence[LocationToVerify]) -> FactCheckResult:
        self._require_available()
        if not locations:
            return FactCheckResult()

        locations_text = "\n".join(loc.as_prompt_line(i) for i, loc in enumerate(locations, 1))
        data = self.generate_json(
            FACT_CHECK_SYSTEM_PROMPT,
            FACT_CHECK_USER_TEMPLATE.format(city=city, locations=locations_text),
            temperature=0.2,
            max_tokens=2000,
        )
        if not isinstance(data, dict):
            raise JSONParseError(self.name, str(data))

        buckets = {}
        for status in ("verified", "invalid", "uncertain"):
            entries = []
            for item in data.get(status) or []:
                if isinstance(item, dict):
                    item = {**item, "status": status}
                try:
                    entries.append(ValidationResult.model_validate(item))
                except ValidationError as e:
                    logger.warning("Dropping malformed fact-check entry %s: %s", item, e)
            buckets[status] = entries
        return FactCheckResult(**buckets)
