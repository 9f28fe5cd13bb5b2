"""
Best-effort translation around the knowledge-API call.

The gateway never blocks an answer on translation: any provider failure
(network, quota, auth) is logged and the original text comes back unchanged.

Provides:
- Regional tag -> bare ISO code normalization (hi-IN -> hi)
- Identity short-circuit when source and target are the same language
- Exact-match dictionary for common spiritual terms
- In-memory cache of provider results
- Google Translate v2 provider over httpx
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
import structlog

from src.askvedic.config import get_config
from src.askvedic.language import bare_language_code

logger = structlog.get_logger(__name__)

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"


class TranslationError(Exception):
    """Raised by providers; the gateway turns it into a soft failure."""
    pass


SPIRITUAL_TERMS: dict[str, dict[str, str]] = {
    "hi": {
        "When is Diwali": "दिवाली कब है",
        "Diwali": "दिवाली",
        "festival": "त्योहार",
        "today": "आज",
        "tomorrow": "कल",
        "Amavasya": "अमावस्या",
        "Purnima": "पूर्णिमा",
        "Ekadashi": "एकादशी",
        "Panchang": "पंचांग",
        "Rahu Kaal": "राहु काल",
        "Brahma Muhurtham": "ब्रह्म मुहूर्त",
    },
    "kn": {
        "When is Diwali": "ದೀಪಾವಳಿ ಯಾವಾಗ",
        "Diwali": "ದೀಪಾವಳಿ",
        "festival": "ಹಬ್ಬ",
        "today": "ಇಂದು",
        "tomorrow": "ನಾಳೆ",
        "Amavasya": "ಅಮಾವಾಸ್ಯೆ",
        "Purnima": "ಪೂರ್ಣಿಮೆ",
        "Ekadashi": "ಏಕಾದಶಿ",
        "Panchang": "ಪಂಚಾಂಗ",
        "Rahu Kaal": "ರಾಹು ಕಾಲ",
        "Brahma Muhurtham": "ಬ್ರಹ್ಮ ಮುಹೂರ್ತ",
    },
}


class TranslationProvider(ABC):
    @abstractmethod
    async def translate(self, texts: list[str], target: str, source: str = "auto") -> list[str]:
        """Translate `texts` with bare ISO codes. Raise on any failure."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


class GoogleTranslateProvider(TranslationProvider):
    """Google Cloud Translation v2 (API key auth)."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def translate(self, texts: list[str], target: str, source: str = "auto") -> list[str]:
        if not self._api_key:
            raise TranslationError("Google Translate API key not configured")

        body: dict[str, Any] = {"q": texts, "target": target, "format": "text"}
        if source and source != "auto":
            body["source"] = source

        response = await self._get_client().post(
            GOOGLE_TRANSLATE_URL,
            params={"key": self._api_key},
            json=body,
        )
        if response.status_code != 200:
            raise TranslationError(
                f"Google Translate API error: {response.status_code} {response.text[:200]}"
            )

        try:
            translations = response.json()["data"]["translations"]
            result = [str(item["translatedText"]) for item in translations]
        except (KeyError, TypeError, ValueError) as e:
            raise TranslationError(f"Unexpected Google Translate response: {e}") from e

        if len(result) != len(texts):
            raise TranslationError("Google Translate returned a different number of results")
        return result

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class TranslationGateway:
    def __init__(self, provider: Optional[TranslationProvider] = None):
        self._provider = provider
        self._cache: dict[tuple[str, str, str], str] = {}

    @property
    def enabled(self) -> bool:
        return self._provider is not None

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _lookup(self, text: str, source: str, target: str) -> Optional[str]:
        cached = self._cache.get((text, source, target))
        if cached is not None:
            return cached
        if source in ("en", "auto"):
            return SPIRITUAL_TERMS.get(target, {}).get(text)
        return None

    async def translate(self, text: str, target_lang: str, source_lang: str = "auto") -> str:
        """
        Translate `text`; on any failure return it unchanged.

        Codes may be regional tags ("hi-IN") or bare codes ("hi").
        """
        if not text or not text.strip():
            return text

        source = bare_language_code(source_lang)
        target = bare_language_code(target_lang)
        if source == target:
            return text

        known = self._lookup(text, source, target)
        if known is not None:
            return known

        if self._provider is None:
            logger.debug("Translation provider not configured, keeping original", target=target)
            return text

        try:
            translated = (await self._provider.translate([text], target, source))[0]
        except Exception as e:
            logger.warning(
                "Translation failed, keeping original text",
                error=str(e),
                source=source,
                target=target,
            )
            return text

        if not translated or not translated.strip():
            return text

        self._cache[(text, source, target)] = translated
        return translated

    async def translate_batch(
        self,
        texts: list[str],
        target_lang: str,
        source_lang: str = "auto",
    ) -> list[str]:
        """Translate several texts in one provider call, same soft-failure rules."""
        source = bare_language_code(source_lang)
        target = bare_language_code(target_lang)
        if source == target or not texts:
            return list(texts)

        results: list[Optional[str]] = [self._lookup(t, source, target) if t.strip() else t for t in texts]
        pending = [i for i, value in enumerate(results) if value is None]
        if not pending:
            return [str(r) for r in results]

        if self._provider is None:
            return list(texts)

        try:
            translated = await self._provider.translate([texts[i] for i in pending], target, source)
        except Exception as e:
            logger.warning("Batch translation failed, keeping original text", error=str(e), target=target)
            return list(texts)

        for index, value in zip(pending, translated):
            if value and value.strip():
                self._cache[(texts[index], source, target)] = value
                results[index] = value
            else:
                results[index] = texts[index]
        return [str(r) for r in results]

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()


def create_translation_gateway(config: Optional[Any] = None) -> TranslationGateway:
    """Gateway with the Google provider when a key is configured, else pass-through."""
    config = config or get_config()
    if not config.google_translate_api_key:
        logger.info("Google Translate key not set; translation disabled")
        return TranslationGateway(None)
    return TranslationGateway(
        GoogleTranslateProvider(
            config.google_translate_api_key,
            timeout=config.request_timeout_seconds,
        )
    )
