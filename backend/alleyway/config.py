"""
Runtime configuration for Alleyway.

Everything is read from the environment (and an optional .env file). Missing
provider keys are not an error here: the provider reports itself unavailable.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Text providers
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-2024-08-06"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"
    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-20250514"

    # Geocoding backends
    kakao_api_key: Optional[str] = None
    nominatim_user_agent: str = "alleyway-geocoder"
    google_maps_api_key: Optional[str] = None

    # Bilingual query translation
    translation_enabled: bool = True
    translation_model: str = "gpt-4o-mini"

    # Tunables
    max_distance_km: float = 50.0
    geocoding_pacing_ms: int = 150
    viewbox_offset_deg: float = 0.5
    unhealthy_threshold: int = 5
    pipeline_max_retries: int = 1
    retry_base_delay_s: float = 1.0
    retry_max_delay_s: float = 30.0
    rate_limit_max_wait_s: float = 10.0


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", Settings.openai_model),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", Settings.gemini_model),
        gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", Settings.gemini_image_model),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        claude_model=os.getenv("CLAUDE_MODEL", Settings.claude_model),
        kakao_api_key=os.getenv("KAKAO_REST_API_KEY") or None,
        nominatim_user_agent=os.getenv("NOMINATIM_USER_AGENT", Settings.nominatim_user_agent),
        google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY") or os.getenv("GOOGLE_PLACES_API_KEY") or None,
        translation_enabled=_env_bool("GEOCODING_TRANSLATION_ENABLED", True),
        translation_model=os.getenv("TRANSLATION_MODEL", Settings.translation_model),
        max_distance_km=_env_float("GEOCODING_MAX_DISTANCE_KM", Settings.max_distance_km),
        geocoding_pacing_ms=_env_int("GEOCODING_PACING_MS", Settings.geocoding_pacing_ms),
        viewbox_offset_deg=_env_float("GEOCODING_VIEWBOX_OFFSET_DEG", Settings.viewbox_offset_deg),
        unhealthy_threshold=_env_int("PROVIDER_UNHEALTHY_THRESHOLD", Settings.unhealthy_threshold),
        pipeline_max_retries=_env_int("PIPELINE_MAX_RETRIES", Settings.pipeline_max_retries),
        retry_base_delay_s=_env_float("RETRY_BASE_DELAY_S", Settings.retry_base_delay_s),
        retry_max_delay_s=_env_float("RETRY_MAX_DELAY_S", Settings.retry_max_delay_s),
        rate_limit_max_wait_s=_env_float("RATE_LIMIT_MAX_WAIT_S", Settings.rate_limit_max_wait_s),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
