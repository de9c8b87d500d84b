"""
Unit tests for the provider layer.

Tests cover:
- Error taxonomy and retryability
- Code-fence stripping and JSON parsing
- Health bookkeeping (error counter, unhealthy threshold)
- OpenAI generation provider with a mocked client
- Gemini cross-validation provider with a mocked client
- Claude supervisory provider with a mocked client
- Provider registry built from settings
"""
import json

import httpx
import openai
import pytest
from google.genai import errors as genai_errors
from unittest.mock import MagicMock

from alleyway.config import Settings
from alleyway.integrations.base import parse_json_content, strip_code_fences
from alleyway.integrations.claude_client import SupervisoryProvider
from alleyway.integrations.errors import (
    ItineraryStructureError,
    JSONParseError,
    ProviderError,
    ProviderNotAvailableError,
    RateLimitError,
)
from alleyway.integrations.gemini_client import CrossValidationProvider
from alleyway.integrations.openai_client import GenerationProvider, build_itinerary_prompt
from alleyway.integrations.prompts import JSON_ONLY_SUFFIX
from alleyway.integrations.registry import ProviderRegistry
from alleyway.models.review import LocationToVerify, SingleActivityRequest
from alleyway.models.trip_parameters import TripParameters


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _claude_message(text, input_tokens=100, output_tokens=50):
    block = MagicMock()
    block.type = "text"
    block.text = text
    message = MagicMock()
    message.content = [block]
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    return message


def _gemini_response(text):
    response = MagicMock()
    response.text = text
    response.usage_metadata = None
    return response


LOCATIONS = [
    LocationToVerify(name="Gwangjang Market", address="88 Changgyeonggung-ro", category="market"),
    LocationToVerify(name="Fake Noodle Palace", category="restaurant"),
]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestErrors:
    def test_not_available_is_not_retryable(self):
        e = ProviderNotAvailableError("openai")
        assert e.retryable is False
        assert e.provider == "openai"
        assert "[openai]" in str(e)

    def test_rate_limit_carries_retry_after(self):
        e = RateLimitError("claude", retry_after_s=12)
        assert e.retryable is True
        assert e.retry_after_s == 12

    def test_json_parse_error_keeps_raw_content(self):
        e = JSONParseError("gemini", "not json")
        assert e.retryable is True
        assert e.raw_content == "not json"

    def test_structure_error_not_retryable_by_default(self):
        assert ItineraryStructureError("openai", "Day 2 has no activities").retryable is False

    def test_stage_unset_until_pipeline_stamps_it(self):
        e = ProviderError("openai", "boom")
        assert e.stage is None
        assert isinstance(e, RuntimeError)


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------

class TestJsonHelpers:
    def test_strips_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_plain_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"

    def test_leaves_bare_json_alone(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_parse_fenced_content(self):
        assert parse_json_content("openai", '```json\n{"title": "x"}\n```') == {"title": "x"}

    def test_parse_failure_raises_with_raw_content(self):
        with pytest.raises(JSONParseError) as exc:
            parse_json_content("openai", "Sure! Here is your itinerary")
        assert exc.value.raw_content == "Sure! Here is your itinerary"
        assert exc.value.provider == "openai"


# ---------------------------------------------------------------------------
# Prompt building
# ---------------------------------------------------------------------------

class TestItineraryPrompt:
    def test_prompt_is_deterministic(self, params):
        assert build_itinerary_prompt(params) == build_itinerary_prompt(params)

    def test_prompt_renders_labels(self, params):
        prompt = build_itinerary_prompt(params)
        assert "3-day itinerary for Seoul" in prompt
        assert "Interests: street food, coffee" in prompt
        assert "Moderate (3-4 activities a day)" in prompt
        assert "Localness Level: 4/5" in prompt
        assert "Group Type: solo" in prompt
        assert "template" not in prompt.lower()

    def test_prompt_appends_template(self):
        params = TripParameters(city="Tokyo", days=2, template_prompt="Coffee crawl every morning")
        prompt = build_itinerary_prompt(params)
        assert "Follow this template style" in prompt
        assert prompt.index("Coffee crawl every morning") > prompt.index("Group Type")

    def test_no_interests_falls_back(self):
        prompt = build_itinerary_prompt(TripParameters(city="Tokyo", days=1))
        assert "Interests: general exploration" in prompt


# ---------------------------------------------------------------------------
# Generation provider (OpenAI)
# ---------------------------------------------------------------------------

class TestGenerationProvider:
    def test_unavailable_without_key(self):
        provider = GenerationProvider(Settings())
        assert provider.is_available() is False
        assert provider.get_status().available is False
        with pytest.raises(ProviderNotAvailableError):
            provider.generate_text("system", "user")

    def test_generate_itinerary_parses_fenced_json(self, settings, params, itinerary_data, completion):
        client = MagicMock()
        client.chat.completions.create.return_value = completion(f"```json\n{json.dumps(itinerary_data)}\n```")
        provider = GenerationProvider(settings, client=client)

        itinerary = provider.generate_itinerary(params)

        assert len(itinerary.daily_plans) == 3
        assert itinerary.daily_plans[0].activities[0].name == "Gwangjang Market"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == settings.openai_model
        assert kwargs["messages"][1]["content"] == build_itinerary_prompt(params)

    def test_generate_text_reports_usage(self, settings, completion):
        client = MagicMock()
        client.chat.completions.create.return_value = completion("hello", 7, 3)
        result = GenerationProvider(settings, client=client).generate_text("s", "u")
        assert result.content == "hello"
        assert result.usage.total_tokens == 10
        assert result.provider == "openai"
        assert "response_format" not in client.chat.completions.create.call_args.kwargs

    def test_unparseable_response_raises_json_parse_error(self, settings, params, completion):
        client = MagicMock()
        client.chat.completions.create.return_value = completion("I cannot help with that")
        with pytest.raises(JSONParseError) as exc:
            GenerationProvider(settings, client=client).generate_itinerary(params)
        assert exc.value.raw_content == "I cannot help with that"

    def test_schema_violation_raises_structure_error(self, settings, params, itinerary_data, completion):
        itinerary_data["localScore"] = 42
        client = MagicMock()
        client.chat.completions.create.return_value = completion(json.dumps(itinerary_data))
        with pytest.raises(ItineraryStructureError):
            GenerationProvider(settings, client=client).generate_itinerary(params)

    def test_vendor_rate_limit_is_translated(self, settings):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, headers={"retry-after": "2"}, request=request)
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.RateLimitError("slow down", response=response, body=None)

        with pytest.raises(RateLimitError) as exc:
            GenerationProvider(settings, client=client).generate_text("s", "u")
        assert exc.value.retry_after_s == 2.0
        assert exc.value.retryable is True

    def test_unexpected_failure_wrapped_with_cause(self, settings):
        client = MagicMock()
        boom = ConnectionError("reset by peer")
        client.chat.completions.create.side_effect = boom
        with pytest.raises(ProviderError) as exc:
            GenerationProvider(settings, client=client).generate_text("s", "u")
        assert exc.value.cause is boom

    def test_single_activity_rejects_placeholder(self, settings, completion):
        client = MagicMock()
        client.chat.completions.create.return_value = completion('{"activity": {"name": "Lunch"}}')
        request = SingleActivityRequest(city="Seoul", day_theme="Markets", time_slot="afternoon", requirements="food")
        with pytest.raises(ItineraryStructureError):
            GenerationProvider(settings, client=client).generate_single_activity(request)

    def test_single_activity_unwraps_activity_key(self, settings, completion):
        client = MagicMock()
        client.chat.completions.create.return_value = completion(
            '{"activity": {"name": "Tongin Market", "category": "Market", "type": "Afternoon"}}'
        )
        request = SingleActivityRequest(
            city="Seoul", day_theme="Markets", time_slot="afternoon", requirements="food",
            exclude_names=["Gwangjang Market"],
        )
        activity = GenerationProvider(settings, client=client).generate_single_activity(request)
        assert activity.name == "Tongin Market"
        assert activity.category == "market"
        user_prompt = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "DO NOT use these names: Gwangjang Market" in user_prompt


# ---------------------------------------------------------------------------
# Health bookkeeping
# ---------------------------------------------------------------------------

class TestHealth:
    def test_unhealthy_after_five_consecutive_errors(self, settings):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("boom")
        provider = GenerationProvider(settings, client=client)

        for _ in range(4):
            with pytest.raises(ProviderError):
                provider.generate_text("s", "u")
        assert provider.healthy is True
        assert provider.error_count == 4

        with pytest.raises(ProviderError):
            provider.generate_text("s", "u")
        assert provider.healthy is False
        assert provider.get_status().error_count == 5

    def test_success_resets_counter(self, settings, completion):
        client = MagicMock()
        client.chat.completions.create.side_effect = [RuntimeError("boom")] * 5 + [completion("ok")]
        provider = GenerationProvider(settings, client=client)
        for _ in range(5):
            with pytest.raises(ProviderError):
                provider.generate_text("s", "u")

        provider.generate_text("s", "u")
        assert provider.error_count == 0
        assert provider.healthy is True

    def test_health_check_updates_status(self, settings):
        client = MagicMock()
        provider = GenerationProvider(settings, client=client)
        assert provider.health_check() is True
        assert provider.get_status().last_health_check is not None

        client.models.list.side_effect = RuntimeError("unreachable")
        assert provider.health_check() is False
        assert provider.get_status().healthy is False

    def test_successful_health_check_resets_counter(self, settings):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("boom")
        provider = GenerationProvider(settings, client=client)
        for _ in range(5):
            with pytest.raises(ProviderError):
                provider.generate_text("s", "u")
        assert provider.healthy is False

        assert provider.health_check() is True
        assert provider.error_count == 0

        with pytest.raises(ProviderError):
            provider.generate_text("s", "u")
        assert provider.healthy is True
        assert provider.error_count == 1

    def test_health_check_false_when_unconfigured(self):
        provider = GenerationProvider(Settings())
        assert provider.health_check() is False
        assert provider.get_status().last_health_check is not None


# ---------------------------------------------------------------------------
# Cross-validation provider (Gemini)
# ---------------------------------------------------------------------------

class TestCrossValidationProvider:
    def test_empty_location_list_is_a_no_op(self, settings):
        client = MagicMock()
        provider = CrossValidationProvider(settings, client=client)
        assert provider.validate_locations("Seoul") == []
        assert provider.validate_locations("Seoul", []) == []
        client.models.generate_content.assert_not_called()

    def test_no_op_even_when_unconfigured(self):
        assert CrossValidationProvider(Settings()).validate_locations("Seoul", None) == []

    def test_parses_locations(self, settings):
        client = MagicMock()
        client.models.generate_content.return_value = _gemini_response(json.dumps({
            "locations": [
                {"name": "Gwangjang Market", "status": "verified", "confidence": 0.95},
                {"name": "Fake Noodle Palace", "status": "invalid", "confidence": 0.2,
                 "correctedName": "Myeongdong Kyoja", "possibleMatches": ["Myeongdong Kyoja"]},
            ]
        }))
        results = CrossValidationProvider(settings, client=client).validate_locations("Seoul", LOCATIONS)

        assert [r.status for r in results] == ["verified", "invalid"]
        assert results[1].corrected_name == "Myeongdong Kyoja"
        prompt = client.models.generate_content.call_args.kwargs["contents"]
        assert "1. Gwangjang Market (market) at 88 Changgyeonggung-ro" in prompt

    def test_accepts_bare_list(self, settings):
        client = MagicMock()
        client.models.generate_content.return_value = _gemini_response('[{"name": "Gwangjang Market"}]')
        results = CrossValidationProvider(settings, client=client).validate_locations("Seoul", LOCATIONS)
        assert results[0].status == "uncertain"

    def test_quota_error_becomes_rate_limit(self, settings):
        client = MagicMock()
        client.models.generate_content.side_effect = genai_errors.APIError(
            429, {"error": {"message": "quota", "status": "RESOURCE_EXHAUSTED"}}
        )
        with pytest.raises(RateLimitError):
            CrossValidationProvider(settings, client=client).validate_locations("Seoul", LOCATIONS)

    def test_generate_image_returns_inline_bytes(self, settings):
        part = MagicMock()
        part.inline_data.mime_type = "image/png"
        part.inline_data.data = b"\x89PNG"
        candidate = MagicMock()
        candidate.content.parts = [part]
        response = MagicMock()
        response.candidates = [candidate]
        client = MagicMock()
        client.models.generate_content.return_value = response

        image = CrossValidationProvider(settings, client=client).generate_image("Seoul alley at dusk", "9:16")
        assert image.image_bytes == b"\x89PNG"
        assert image.mime_type == "image/png"
        assert client.models.generate_content.call_args.kwargs["model"] == settings.gemini_image_model

    def test_generate_image_rejects_unknown_ratio(self, settings):
        with pytest.raises(ValueError):
            CrossValidationProvider(settings, client=MagicMock()).generate_image("x", "7:3")

    def test_generate_image_without_image_part_fails(self, settings):
        response = MagicMock()
        response.candidates = []
        client = MagicMock()
        client.models.generate_content.return_value = response
        provider = CrossValidationProvider(settings, client=client)
        with pytest.raises(ProviderError):
            provider.generate_image("x")
        assert provider.error_count == 1


# ---------------------------------------------------------------------------
# Supervisory provider (Claude)
# ---------------------------------------------------------------------------

class TestSupervisoryProvider:
    def test_supervise_returns_result_without_applying_corrections(self, settings, itinerary):
        client = MagicMock()
        client.messages.create.return_value = _claude_message(json.dumps({
            "approved": False,
            "qualityScore": 6,
            "issues": [{"type": "authenticity", "severity": "warning", "dayIndex": 0, "message": "Too touristy"}],
            "corrections": {"activities": [{"dayIndex": 0, "activityIndex": 0, "name": "Tongin Market"}]},
        }))
        provider = SupervisoryProvider(settings, client=client)

        result = provider.supervise(itinerary, [], [], level="full")

        assert result.approved is False
        assert result.quality_score == 6
        assert result.issues[0].day_index == 0
        assert result.has_corrections is True
        assert result.final_itinerary is None
        assert itinerary.daily_plans[0].activities[0].name == "Gwangjang Market"

    def test_system_prompt_requests_json(self, settings, itinerary):
        client = MagicMock()
        client.messages.create.return_value = _claude_message('{"approved": true}')
        SupervisoryProvider(settings, client=client).supervise(itinerary, level="quick")
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"].endswith(JSON_ONLY_SUFFIX)
        assert "QUICK check" in kwargs["messages"][0]["content"]

    def test_unknown_level_rejected(self, settings, itinerary):
        with pytest.raises(ValueError):
            SupervisoryProvider(settings, client=MagicMock()).supervise(itinerary, level="deep")

    def test_non_object_reply_is_parse_error(self, settings, itinerary):
        client = MagicMock()
        client.messages.create.return_value = _claude_message("[1, 2, 3]")
        with pytest.raises(JSONParseError):
            SupervisoryProvider(settings, client=client).supervise(itinerary)

    def test_fact_check_buckets_by_key(self, settings):
        client = MagicMock()
        client.messages.create.return_value = _claude_message(json.dumps({
            "verified": [{"name": "Gwangjang Market", "confidence": 0.9}],
            "invalid": [{"name": "Fake Noodle Palace", "status": "verified", "reason": "No such place"}],
            "uncertain": [],
        }))
        result = SupervisoryProvider(settings, client=client).fact_check("Seoul", LOCATIONS)

        assert [r.name for r in result.verified] == ["Gwangjang Market"]
        assert result.verified[0].status == "verified"
        assert result.invalid[0].status == "invalid"
        assert result.uncertain == []

    def test_fact_check_requires_configuration(self):
        with pytest.raises(ProviderNotAvailableError):
            SupervisoryProvider(Settings()).fact_check("Seoul", LOCATIONS)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_from_settings_without_keys(self):
        registry = ProviderRegistry.from_settings(Settings())
        statuses = registry.statuses()
        assert [s.name for s in statuses] == ["openai", "gemini", "claude"]
        assert not any(s.available for s in statuses)

    def test_get_by_role(self, registry):
        assert registry.get("supervision").name == "claude"
        with pytest.raises(KeyError):
            registry.get("geocoding")
