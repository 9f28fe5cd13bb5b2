"""
Language utilities for the assistant.

One selected LanguageTag drives three subsystems: the recognition locale, the
translation pivot and the synthesis voice. Everything here is a pure function
of the tag, except `LanguageState`, which holds the single selected value and
tells subscribers when it changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Callable, Literal, Optional

import structlog

logger = structlog.get_logger(__name__)

LanguageTag = Literal["en-IN", "hi-IN", "kn-IN"]

SUPPORTED_LANGUAGES: tuple[LanguageTag, ...] = ("en-IN", "hi-IN", "kn-IN")
DEFAULT_LANGUAGE: LanguageTag = "en-IN"
PIVOT_LANGUAGE: LanguageTag = "en-IN"

LANGUAGE_LABELS: dict[str, str] = {
    "en-IN": "English",
    "hi-IN": "Hindi",
    "kn-IN": "Kannada",
}

_BARE_CODES: dict[str, str] = {
    "en-in": "en",
    "hi-in": "hi",
    "kn-in": "kn",
    "en": "en",
    "hi": "hi",
    "kn": "kn",
    "auto": "auto",
}

_DEVANAGARI_RE = re.compile(r"[\u0900-\u097F]")
_KANNADA_RE = re.compile(r"[\u0C80-\u0CFF]")


def primary_subtag(lang: Optional[str]) -> str:
    """`hi-IN`, `hi_IN` and `HI` all give `hi`."""
    return re.split(r"[-_]", (lang or "").strip().lower(), maxsplit=1)[0]


def bare_language_code(tag: Optional[str]) -> str:
    """
    Normalize a regional tag to the bare ISO code a translation provider expects.

    Unknown values map to "en"; "auto" is preserved.
    """
    norm = (tag or "").strip().lower().replace("_", "-")
    return _BARE_CODES.get(norm, "en")


def normalize_language_tag(raw: Optional[str], default: LanguageTag = DEFAULT_LANGUAGE) -> LanguageTag:
    code = primary_subtag(raw)
    for tag in SUPPORTED_LANGUAGES:
        if primary_subtag(tag) == code:
            return tag
    return default


def is_pivot(tag: Optional[str], pivot: str = PIVOT_LANGUAGE) -> bool:
    return bare_language_code(tag) == bare_language_code(pivot)


def contains_devanagari(text: str) -> bool:
    return bool(_DEVANAGARI_RE.search(text or ""))


def contains_kannada(text: str) -> bool:
    return bool(_KANNADA_RE.search(text or ""))


def detect_script_language(text: str) -> Optional[str]:
    """
    Return "kn" or "hi" when the text carries that script, else None.

    Kannada wins when both are present; it is the rarer script and the one
    whose voice is most often missing.
    """
    if contains_kannada(text):
        return "kn"
    if contains_devanagari(text):
        return "hi"
    return None


@dataclass(frozen=True)
class RecognitionConfig:
    """Per-language speech recognition settings."""

    lang: str
    max_alternatives: int = 1
    interim_results: bool = False
    continuous: bool = False


def recognition_config(tag: str) -> RecognitionConfig:
    """
    Languages with more script/tonal ambiguity ask the recognizer for several
    alternatives and interim results; the default language asks for one.
    """
    normalized = normalize_language_tag(tag)
    if normalized == DEFAULT_LANGUAGE:
        return RecognitionConfig(lang=normalized, max_alternatives=1, interim_results=False)
    return RecognitionConfig(lang=normalized, max_alternatives=3, interim_results=True)


LanguageListener = Callable[[LanguageTag], None]


@dataclass
class LanguageState:
    """
    The single selected language for a session.

    Subscribers are called synchronously on change so derived state (voice
    list, recognition config) is recomputed before the next turn reads it.
    """

    current: LanguageTag = DEFAULT_LANGUAGE
    pivot: LanguageTag = PIVOT_LANGUAGE
    _listeners: list[LanguageListener] = field(default_factory=list, repr=False)

    @property
    def bare_code(self) -> str:
        return bare_language_code(self.current)

    @property
    def is_pivot(self) -> bool:
        return is_pivot(self.current, self.pivot)

    def subscribe(self, listener: LanguageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set(self, tag: str) -> bool:
        """Select a language. Returns True when the selection changed."""
        target = normalize_language_tag(tag, default=self.current)
        if target == self.current:
            return False

        previous = self.current
        self.current = target
        logger.info("Language changed", previous=previous, current=target)

        for listener in list(self._listeners):
            try:
                listener(target)
            except Exception:
                logger.exception("Language listener failed", current=target)
        return True
