import logging
import threading
from typing import Dict, Optional, Tuple, Union

from openai import OpenAI

from alleyway.config import Settings, get_settings
from alleyway.integrations.prompts import TRANSLATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "ko": "Korean",
    "ja": "Japanese",
    "th": "Thai",
    "zh": "Chinese",
    "vi": "Vietnamese",
    "ms": "Malay",
    "id": "Indonesian",
}


class _NoTranslation:
    def __repr__(self) -> str:
        return "NO_TRANSLATION"


# Cached marker for "asked already, nothing usable came back"
NO_TRANSLATION = _NoTranslation()


class TranslationCache:
    """
    Process-lifetime cache of geocoding query translations keyed by (text, language).
    Guarded by a lock since the resolver translates on worker threads.
    """

    def __init__(self):
        self._entries: Dict[Tuple[str, str], Union[str, _NoTranslation]] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[Tuple[str, str], threading.Lock] = {}

    def get(self, text: str, lang: str) -> Optional[Union[str, _NoTranslation]]:
        """Returns the cached value, NO_TRANSLATION, or None on a miss."""
        with self._lock:
            return self._entries.get((text, lang))

    def set(self, text: str, lang: str, value: Union[str, _NoTranslation]) -> None:
        with self._lock:
            self._entries[(text, lang)] = value

    def key_lock(self, text: str, lang: str) -> threading.Lock:
        """Lock held by whoever is filling a missing entry, so each key is fetched once."""
        with self._lock:
            return self._key_locks.setdefault((text, lang), threading.Lock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def __contains__(self, key: Tuple[str, str]) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class Translator:
    """Translates English place names/addresses into a destination's local language."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[TranslationCache] = None,
        client: Optional[OpenAI] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else TranslationCache()
        self.model = self.settings.translation_model
        self.enabled = self.settings.translation_enabled
        if client is None and self.settings.openai_api_key:
            client = OpenAI(api_key=self.settings.openai_api_key)
        self.client = client

    def is_available(self) -> bool:
        return self.enabled and self.client is not None

    def translate(self, text: Optional[str], lang: Optional[str]) -> Optional[str]:
        if not text or not lang or lang == "en":
            return None
        # already in a local script
        if not text.isascii():
            return None
        language = LANGUAGE_NAMES.get(lang)
        if not language:
            return None

        cached = self.cache.get(text, lang)
        if cached is not None:
            return None if cached is NO_TRANSLATION else cached

        if not self.is_available():
            return None

        with self.cache.key_lock(text, lang):
            cached = self.cache.get(text, lang)
            if cached is not None:
                return None if cached is NO_TRANSLATION else cached
            return self._fetch(text, lang, language)

    def _fetch(self, text: str, lang: str, language: str) -> Optional[str]:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": TRANSLATION_SYSTEM_PROMPT.format(language=language)},
                    {"role": "user", "content": text},
                ],
                temperature=0,
                max_tokens=100,
            )
            translated = (response.choices[0].message.content or "").strip()
        except Exception as e:
            logger.error("Translation to %s failed for %r: %s", lang, text, e)
            self.cache.set(text, lang, NO_TRANSLATION)
            return None

        if translated and translated != text:
            self.cache.set(text, lang, translated)
            logger.debug("Translated %r -> %r (%s)", text, translated, lang)
            return translated

        self.cache.set(text, lang, NO_TRANSLATION)
        return None
