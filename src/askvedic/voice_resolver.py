"""
Language-to-voice matching.

Given a target language and the platform voice inventory, pick the best
voices in a fixed order:

1. voices whose language matches the target's primary subtag
2. for sparsely supported languages with no match: the regional default
   language, then any variant of the default language
3. within that set, names that look like female voices (capped)
4. otherwise the first few voices of the set, unfiltered
5. nothing at all: a single placeholder entry, never an exception

The heuristics (name hints, sparse languages, fallback chain) live in
`VoiceSelectionPolicy` so they can be tuned per platform from configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from src.askvedic.language import (
    DEFAULT_LANGUAGE,
    LANGUAGE_LABELS,
    detect_script_language,
    normalize_language_tag,
    primary_subtag,
)
from src.askvedic.speech_types import VoiceDescriptor

logger = structlog.get_logger(__name__)

PLACEHOLDER_VOICE_NAME = "Loading voices..."


@dataclass(frozen=True)
class VoiceSelectionPolicy:
    female_name_hints: tuple[str, ...] = (
        "female",
        "woman",
        "zira",
        "samantha",
        "karen",
        "veena",
        "heera",
        "kalpana",
        "swara",
        "lekha",
        "aditi",
        "sapna",
    )
    male_name_markers: tuple[str, ...] = ("male", "man", "ravi", "hemant", "prabhat", "madhur")
    sparse_languages: tuple[str, ...] = ("kn",)
    fallback_chain: tuple[str, ...] = ("en-IN", "en")
    max_candidates: int = 4
    fallback_count: int = 3

    @classmethod
    def from_config(cls, config: Any) -> "VoiceSelectionPolicy":
        return cls(
            female_name_hints=tuple(config.female_voice_hints),
            male_name_markers=tuple(config.male_voice_markers),
            sparse_languages=tuple(config.sparse_voice_languages),
            fallback_chain=tuple(config.voice_fallback_chain),
            max_candidates=config.max_voice_candidates,
            fallback_count=config.fallback_voice_count,
        )


DEFAULT_POLICY = VoiceSelectionPolicy()


def placeholder_voice(lang: str = DEFAULT_LANGUAGE) -> VoiceDescriptor:
    return VoiceDescriptor(name=PLACEHOLDER_VOICE_NAME, lang=lang, placeholder=True)


def is_male_voice_name(name: str, policy: VoiceSelectionPolicy = DEFAULT_POLICY) -> bool:
    """Whole-word match, so "Female" is not caught by "male"."""
    lowered = (name or "").lower()
    return any(re.search(rf"\b{re.escape(marker)}\b", lowered) for marker in policy.male_name_markers)


def is_female_voice_name(name: str, policy: VoiceSelectionPolicy = DEFAULT_POLICY) -> bool:
    lowered = (name or "").lower()
    if is_male_voice_name(lowered, policy):
        return False
    return any(hint in lowered for hint in policy.female_name_hints)


def voices_for_language(lang: str, voices: list[VoiceDescriptor]) -> list[VoiceDescriptor]:
    """Voices whose `lang` shares the target's primary subtag."""
    wanted = primary_subtag(lang)
    return [v for v in voices if not v.placeholder and primary_subtag(v.lang) == wanted]


def _exact_region(lang: str, voices: list[VoiceDescriptor]) -> list[VoiceDescriptor]:
    wanted = (lang or "").strip().lower().replace("_", "-")
    return [v for v in voices if not v.placeholder and v.lang.strip().lower().replace("_", "-") == wanted]


def _fallback_voices(voices: list[VoiceDescriptor], policy: VoiceSelectionPolicy) -> list[VoiceDescriptor]:
    for lang in policy.fallback_chain:
        if "-" in lang or "_" in lang:
            matches = _exact_region(lang, voices)
        else:
            matches = voices_for_language(lang, voices)
        if matches:
            return matches
    return []


def language_voice_pool(
    lang: str,
    voices: list[VoiceDescriptor],
    policy: VoiceSelectionPolicy = DEFAULT_POLICY,
) -> list[VoiceDescriptor]:
    """Steps 1-2: language matches, with the fallback chain for sparse languages."""
    pool = voices_for_language(lang, voices)
    if not pool and primary_subtag(lang) in policy.sparse_languages:
        pool = _fallback_voices(voices, policy)
    return pool


def resolve_voices(
    lang: str,
    voices: list[VoiceDescriptor],
    policy: VoiceSelectionPolicy = DEFAULT_POLICY,
) -> list[VoiceDescriptor]:
    """Ordered voice candidates for `lang`; a placeholder entry when none exist."""
    pool = language_voice_pool(lang, voices or [], policy)

    female = [v for v in pool if is_female_voice_name(v.name, policy)]
    if female:
        return female[: policy.max_candidates]

    if pool:
        return pool[: policy.fallback_count]

    return [placeholder_voice(lang)]


@dataclass(frozen=True)
class VoiceChoice:
    """Voice picked for one utterance, plus any advisory about a fallback."""

    voice: Optional[VoiceDescriptor]
    lang: str
    required_language: str
    fell_back: bool = False
    advisory: str = ""
    persistent_advisory: bool = False


def _missing_voice_advisory(required: str) -> tuple[str, bool]:
    label = LANGUAGE_LABELS.get(normalize_language_tag(required), required)
    if required == "kn":
        return (
            "Kannada voice is not installed on this device, so the answer is read in English. "
            "To hear Kannada, add a Kannada text-to-speech voice in your system's language "
            "settings and reload the page.",
            True,
        )
    return (f"{label} voice not available on this device. Using English voice instead.", False)


def choose_voice_for_text(
    text: str,
    selected_language: str,
    voices: list[VoiceDescriptor],
    policy: VoiceSelectionPolicy = DEFAULT_POLICY,
) -> VoiceChoice:
    """
    Pick the voice for an utterance from the script actually present in `text`.

    English selected but Devanagari in the text prefers a Hindi voice. When the
    required script has no voice, fall back to the default language and attach
    an advisory; the sparsely supported language gets a persistent one.
    """
    required = detect_script_language(text) or primary_subtag(selected_language)
    target_tag = normalize_language_tag(required, default=normalize_language_tag(selected_language))

    direct = voices_for_language(required, voices or [])
    if direct:
        female = [v for v in direct if is_female_voice_name(v.name, policy)]
        voice = (female or direct)[0]
        return VoiceChoice(voice=voice, lang=voice.lang, required_language=required)

    fallback = _fallback_voices(voices or [], policy)
    if required == primary_subtag(DEFAULT_LANGUAGE):
        # Default language with no exact voices: let the platform pick.
        voice = fallback[0] if fallback else None
        return VoiceChoice(voice=voice, lang=target_tag, required_language=required)

    message, persistent = _missing_voice_advisory(required)
    if fallback:
        female = [v for v in fallback if is_female_voice_name(v.name, policy)]
        voice = (female or fallback)[0]
        logger.info(
            "Script voice unavailable, using fallback",
            required_language=required,
            fallback_voice=voice.name,
        )
        return VoiceChoice(
            voice=voice,
            lang=voice.lang,
            required_language=required,
            fell_back=True,
            advisory=message,
            persistent_advisory=persistent,
        )

    return VoiceChoice(
        voice=None,
        lang=target_tag,
        required_language=required,
        fell_back=True,
        advisory=message,
        persistent_advisory=persistent,
    )


class LanguageVoiceResolver:
    """
    Keeps the voice candidates for the selected language current.

    Re-resolves whenever the language or the platform inventory changes.
    """

    def __init__(
        self,
        *,
        language: str = DEFAULT_LANGUAGE,
        policy: Optional[VoiceSelectionPolicy] = None,
        on_change: Optional[Callable[[list[VoiceDescriptor]], None]] = None,
    ):
        self.policy = policy or DEFAULT_POLICY
        self._language = language
        self._inventory: list[VoiceDescriptor] = []
        self._candidates: list[VoiceDescriptor] = [placeholder_voice(language)]
        self._on_change = on_change

    @property
    def language(self) -> str:
        return self._language

    @property
    def inventory(self) -> list[VoiceDescriptor]:
        return list(self._inventory)

    @property
    def candidates(self) -> list[VoiceDescriptor]:
        return list(self._candidates)

    @property
    def selected(self) -> Optional[VoiceDescriptor]:
        first = self._candidates[0] if self._candidates else None
        if first is None or first.placeholder:
            return None
        return first

    def on_language_changed(self, language: str) -> None:
        self._language = language
        self._recompute()

    def on_voices_changed(self, voices: list[VoiceDescriptor]) -> None:
        self._inventory = list(voices or [])
        self._recompute()

    def choose_for_text(self, text: str) -> VoiceChoice:
        return choose_voice_for_text(text, self._language, self._inventory, self.policy)

    def _recompute(self) -> None:
        self._candidates = resolve_voices(self._language, self._inventory, self.policy)
        logger.debug(
            "Voices resolved",
            language=self._language,
            inventory=len(self._inventory),
            candidates=[v.name for v in self._candidates],
        )
        if self._on_change is not None:
            self._on_change(self.candidates)
