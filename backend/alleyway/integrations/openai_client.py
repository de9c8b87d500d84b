import logging
from typing import Optional, Tuple

import openai
from openai import OpenAI

from alleyway.config import Settings, get_settings
from alleyway.integrations.base import TextProvider, retry_after_from_response
from alleyway.integrations.errors import ProviderError, RateLimitError
from alleyway.integrations.prompts import GENERATION_SYSTEM_PROMPT, SINGLE_ACTIVITY_SYSTEM_PROMPT
from alleyway.models.entities import Activity, GeneratedItinerary
from alleyway.models.review import SingleActivityRequest, TokenUsage
from alleyway.models.trip_parameters import TripParameters
from alleyway.graph.postprocess.structure import parse_activity, parse_itinerary

logger = logging.getLogger(__name__)

BUDGET_LABELS = {
    "economy": "Budget-friendly (street food, free sights)",
    "moderate": "Moderate (mix of casual and sit-down)",
    "premium": "Premium (splurge-worthy spots welcome)",
}

PACE_LABELS = {
    "relaxed": "Relaxed (2-3 activities a day, long breaks)",
    "moderate": "Moderate (3-4 activities a day)",
    "active": "Active (4-5 activities a day)",
    "packed": "Packed (5 activities a day, minimal downtime)",
}


def build_itinerary_prompt(params: TripParameters) -> str:
    """Render trip parameters as the user prompt. Pure function of params."""
    interests = ", ".join(params.interests) if params.interests else "general exploration"
    parts = [
        f"Create a {params.days}-day itinerary for {params.city} with these preferences:",
        f"- Interests: {interests}",
        f"- Budget: {BUDGET_LABELS.get(params.budget, params.budget)}",
        f"- Localness Level: {params.localness_level}/5 (5 = maximum local authenticity)",
        f"- Pace: {PACE_LABELS.get(params.pace, params.pace)}",
        f"- Group Type: {params.group_type}",
    ]
    if params.template_prompt:
        parts.append(f"\nIMPORTANT: Follow this template style:\n{params.template_prompt}")
    parts.append("\nMake it authentic and full of hidden gems!")
    return "\n".join(parts)


class GenerationProvider(TextProvider):
    """Drafts full itineraries with OpenAI chat completions."""

    name = "openai"
    default_temperature = 0.8
    default_max_tokens = 3000

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None):
        settings = settings or get_settings()
        super().__init__(unhealthy_threshold=settings.unhealthy_threshold)
        self.model = settings.openai_model
        self.client = client
        if self.client is None and settings.openai_api_key:
            self.client = OpenAI(api_key=settings.openai_api_key)

    def is_available(self) -> bool:
        return self.client is not None

    def _ping(self) -> None:
        self.client.models.list()

    def _complete(self, system_prompt, user_prompt, temperature, max_tokens, json_mode) -> Tuple[str, TokenUsage]:
        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        resp = self.client.chat.completions.create(**kwargs)
        content = resp.choices[0].message.content if resp.choices else ""
        usage = TokenUsage()
        if resp.usage is not None:
            usage = TokenUsage(
                input_tokens=resp.usage.prompt_tokens or 0,
                output_tokens=resp.usage.completion_tokens or 0,
                total_tokens=resp.usage.total_tokens or 0,
            )
        return content or "", usage

    def _translate_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, openai.RateLimitError):
            return RateLimitError(self.name, retry_after_s=retry_after_from_response(exc), cause=exc)
        return super()._translate_error(exc)

    def generate_itinerary(self, params: TripParameters) -> GeneratedItinerary:
        data = self.generate_json(
            GENERATION_SYSTEM_PROMPT,
            build_itinerary_prompt(params),
            temperature=0.8,
            max_tokens=3000,
        )
        itinerary = parse_itinerary(self.name, data)
        logger.info(
            "Drafted '%s' for %s with %d days", itinerary.title, params.city, len(itinerary.daily_plans)
        )
        return itinerary

    def generate_single_activity(self, request: SingleActivityRequest) -> Activity:
        user_prompt = "\n".join([
            f"Generate a single activity for {request.city}:",
            f"- Day theme: {request.day_theme}",
            f"- Time slot: {request.time_slot}",
            f"- Requirements: {request.requirements}",
            f"- Category preference: {request.category or 'any'}",
            f"- DO NOT use these names: {', '.join(request.exclude_names) or 'none'}",
        ])
        data = self.generate_json(SINGLE_ACTIVITY_SYSTEM_PROMPT, user_prompt, temperature=0.8, max_tokens=500)
        return parse_activity(self.name, data)
