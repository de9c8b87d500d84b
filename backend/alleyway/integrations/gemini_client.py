"""
Gemini integration.

Used for location cross-validation (best-effort enrichment, never a gate) and
for image generation.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from pydantic import ValidationError

from alleyway.config import Settings, get_settings
from alleyway.integrations.base import TextProvider
from alleyway.integrations.errors import JSONParseError, ProviderError, RateLimitError
from alleyway.integrations.prompts import LOCATION_VALIDATION_SYSTEM_PROMPT
from alleyway.models.review import GeneratedImage, LocationToVerify, TokenUsage, ValidationResult

logger = logging.getLogger(__name__)

ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")


class CrossValidationProvider(TextProvider):
    name = "gemini"
    default_temperature = 0.3
    default_max_tokens = 2000

    def __init__(self, settings: Optional[Settings] = None, client: Optional[genai.Client] = None):
        settings = settings or get_settings()
        super().__init__(unhealthy_threshold=settings.unhealthy_threshold)
        self.model = settings.gemini_model
        self.image_model = settings.gemini_image_model
        self.client = client
        if self.client is None and settings.gemini_api_key:
            self.client = genai.Client(api_key=settings.gemini_api_key)

    def is_available(self) -> bool:
        return self.client is not None

    def _ping(self) -> None:
        # list() is lazy; pulling one page forces the request
        next(iter(self.client.models.list()), None)

    def _complete(self, system_prompt, user_prompt, temperature, max_tokens, json_mode) -> Tuple[str, TokenUsage]:
        config = genai_types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if json_mode else None,
        )
        response = self.client.models.generate_content(
            model=self.model,
            contents=f"{system_prompt}\n\n{user_prompt}",
            config=config,
        )
        meta = response.usage_metadata
        usage = TokenUsage()
        if meta is not None:
            usage = TokenUsage(
                input_tokens=meta.prompt_token_count or 0,
                output_tokens=meta.candidates_token_count or 0,
                total_tokens=meta.total_token_count or 0,
            )
        return response.text or "", usage

    def _translate_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, genai_errors.APIError) and exc.code == 429:
            return RateLimitError(self.name, cause=exc)
        return super()._translate_error(exc)

    def validate_locations(
        self, city: str, locations: Optional[Sequence[LocationToVerify]] = None
    ) -> List[ValidationResult]:
        """
        Check that each (name, address, category) plausibly exists in city.

        An empty or missing location list is a no-op and makes no API call.
        """
        if not locations:
            return []
        self._require_available()

        locations_text = "\n".join(loc.as_prompt_line(i) for i, loc in enumerate(locations, 1))
        user_prompt = "\n".join([
            f"Validate these locations in {city}:",
            "",
            locations_text,
            "",
            "For each location determine whether it exists, whether the name is spelled",
            "correctly, whether the category is accurate, and the correct or closest address.",
        ])
        data = self.generate_json(LOCATION_VALIDATION_SYSTEM_PROMPT, user_prompt)
        raw = data.get("locations", []) if isinstance(data, dict) else data
        if not isinstance(raw, list):
            raise JSONParseError(self.name, str(data))

        results = []
        for item in raw:
            try:
                results.append(ValidationResult.model_validate(item))
            except ValidationError as e:
                logger.warning("Dropping malformed validation entry %s: %s", item, e)
        logger.info("Validated %d/%d locations in %s", len(results), len(locations), city)
        return results

    def generate_image(self, prompt: str, aspect_ratio: Optional[str] = None) -> GeneratedImage:
        self._require_available()
        if aspect_ratio is not None and aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio {aspect_ratio!r}")

        config = genai_types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=genai_types.ImageConfig(aspect_ratio=aspect_ratio) if aspect_ratio else None,
        )

        try:
            response = self.client.models.generate_content(
                model=self.image_model,
                contents=[prompt],
                config=config,
            )
        except Exception as e:
            self.record_error()
            raise self._translate_error(e) from e

        for candidate in response.candidates or []:
            parts = candidate.content.parts if candidate.content else None
            for part in parts or []:
                inline = part.inline_data
                if inline and inline.mime_type and inline.mime_type.startswith("image/"):
                    self.record_success()
                    return GeneratedImage(image_bytes=inline.data or b"", mime_type=inline.mime_type)

        self.record_error()
        raise ProviderError(self.name, "No image was generated")
