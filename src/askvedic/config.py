"""
Configuration management for the Ask VoiceVedic assistant core.

Loads environment variables and provides a strongly-typed configuration object.
Credentials are optional at startup: a missing knowledge-API key surfaces as a
request-time error that the orchestrator turns into a fallback answer.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv
import structlog

load_dotenv()

logger = structlog.get_logger(__name__)

_KNOWLEDGE_PROVIDERS = ("perplexity", "supabase")
_LANGUAGES = ("en-IN", "hi-IN", "kn-IN")


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


@dataclass(frozen=True)
class Config:
    """Strongly-typed configuration object."""

    log_level: str = "INFO"

    # Language
    # - default_language is the tag selected when a session starts
    # - pivot_language is what the knowledge API is asked in
    default_language: str = "en-IN"
    pivot_language: str = "en-IN"

    # Knowledge API
    knowledge_provider: str = "perplexity"  # "perplexity" | "supabase"
    perplexity_api_key: str = ""
    perplexity_model: str = "sonar"
    perplexity_base_url: str = "https://api.perplexity.ai"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    request_timeout_seconds: float = 30.0

    # Translation
    google_translate_api_key: str = ""

    # Voice engine / playback
    voice_ready_timeout_seconds: float = 3.0
    playback_grace_seconds: float = 0.1
    playback_delay_seconds: float = 0.3
    speech_rate: float = 0.85
    speech_pitch: float = 1.1
    speech_volume: float = 1.0

    # Voice selection policy (comma separated in the environment)
    female_voice_hints: tuple[str, ...] = (
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
    male_voice_markers: tuple[str, ...] = ("male", "man", "ravi", "hemant", "prabhat", "madhur")
    sparse_voice_languages: tuple[str, ...] = ("kn",)
    voice_fallback_chain: tuple[str, ...] = ("en-IN", "en")
    max_voice_candidates: int = 4
    fallback_voice_count: int = 3

    # Capture / suggestions / advisories
    capture_submit_delay_seconds: float = 0.15
    suggestion_debounce_seconds: float = 0.5
    suggestion_submit_delay_seconds: float = 0.1
    suggestions_remote_enabled: bool = False
    transient_advisory_seconds: float = 4.0

    # Response shaping
    calendar_max_lines: int = 20
    general_max_lines: int = 6
    guidance_display_limit: int = 8

    @property
    def knowledge_credential_set(self) -> bool:
        if self.knowledge_provider == "supabase":
            return bool(self.supabase_url and self.supabase_anon_key)
        return bool(self.perplexity_api_key)

    def validate(self) -> None:
        """Validate values that would otherwise fail deep inside a request."""
        provider = (self.knowledge_provider or "perplexity").strip().lower()
        if provider not in _KNOWLEDGE_PROVIDERS:
            raise ConfigError(
                f"Invalid KNOWLEDGE_PROVIDER '{self.knowledge_provider}'. "
                "Expected 'perplexity' or 'supabase'."
            )

        for name in ("default_language", "pivot_language"):
            value = getattr(self, name)
            if value not in _LANGUAGES:
                raise ConfigError(
                    f"Invalid {name.upper()} '{value}'. Expected one of: {', '.join(_LANGUAGES)}"
                )

        if self.voice_ready_timeout_seconds <= 0:
            raise ConfigError("VOICE_READY_TIMEOUT_SECONDS must be positive.")

        if not self.knowledge_credential_set:
            logger.warning(
                "Knowledge API credential not set; questions will get a fallback answer",
                knowledge_provider=provider,
            )

    def log_config(self) -> None:
        """Log configuration (without secrets)."""
        logger.info(
            "Configuration loaded",
            log_level=self.log_level,
            default_language=self.default_language,
            pivot_language=self.pivot_language,
            knowledge_provider=self.knowledge_provider,
            perplexity_model=self.perplexity_model,
            supabase_url=self.supabase_url or "NOT SET",
            voice_ready_timeout_seconds=self.voice_ready_timeout_seconds,
            sparse_voice_languages=",".join(self.sparse_voice_languages),
            suggestions_remote_enabled=self.suggestions_remote_enabled,
            perplexity_key_set=bool(self.perplexity_api_key),
            supabase_key_set=bool(self.supabase_anon_key),
            google_translate_key_set=bool(self.google_translate_api_key),
        )


def _get_bool(key: str, default: bool = False) -> bool:
    """Get a boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_int(key: str, default: int) -> int:
    """Get an integer from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    """Get a float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Get a comma separated, lowercased list from environment variable."""
    raw = os.getenv(key)
    if raw is None:
        return default
    items = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    return items or default


def _get_language(key: str, default: str) -> str:
    raw = os.getenv(key, default).strip().lower()
    if raw.startswith("hi"):
        return "hi-IN"
    if raw.startswith("kn"):
        return "kn-IN"
    if raw.startswith("en"):
        return "en-IN"
    return raw


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the application configuration.

    Uses lru_cache to ensure we only load config once.
    """
    defaults = Config()

    return Config(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),

        # Language
        default_language=_get_language("DEFAULT_LANGUAGE", "en-IN"),
        pivot_language=_get_language("PIVOT_LANGUAGE", "en-IN"),

        # Knowledge API
        knowledge_provider=os.getenv("KNOWLEDGE_PROVIDER", "perplexity").strip().lower(),
        perplexity_api_key=os.getenv("PERPLEXITY_API_KEY", ""),
        perplexity_model=os.getenv("PERPLEXITY_MODEL", "sonar"),
        perplexity_base_url=os.getenv("PERPLEXITY_BASE_URL", "https://api.perplexity.ai"),
        supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        request_timeout_seconds=_get_float("REQUEST_TIMEOUT_SECONDS", 30.0),

        # Translation
        google_translate_api_key=os.getenv("GOOGLE_TRANSLATE_API_KEY", ""),

        # Voice engine / playback
        voice_ready_timeout_seconds=_get_float("VOICE_READY_TIMEOUT_SECONDS", 3.0),
        playback_grace_seconds=_get_float("PLAYBACK_GRACE_SECONDS", 0.1),
        playback_delay_seconds=_get_float("PLAYBACK_DELAY_SECONDS", 0.3),
        speech_rate=_get_float("SPEECH_RATE", 0.85),
        speech_pitch=_get_float("SPEECH_PITCH", 1.1),

        # Voice selection policy
        female_voice_hints=_get_list("FEMALE_VOICE_HINTS", defaults.female_voice_hints),
        male_voice_markers=_get_list("MALE_VOICE_MARKERS", defaults.male_voice_markers),
        sparse_voice_languages=_get_list("SPARSE_VOICE_LANGUAGES", defaults.sparse_voice_languages),
        voice_fallback_chain=tuple(
            part.strip()
            for part in os.getenv("VOICE_FALLBACK_CHAIN", "en-IN,en").split(",")
            if part.strip()
        ),

        # Capture / suggestions / advisories
        capture_submit_delay_seconds=_get_float("CAPTURE_SUBMIT_DELAY_SECONDS", 0.15),
        suggestion_submit_delay_seconds=_get_float("SUGGESTION_SUBMIT_DELAY_SECONDS", 0.1),
        suggestion_debounce_seconds=_get_float("SUGGESTION_DEBOUNCE_SECONDS", 0.5),
        suggestions_remote_enabled=_get_bool("SUGGESTIONS_REMOTE_ENABLED", False),
        transient_advisory_seconds=_get_float("TRANSIENT_ADVISORY_SECONDS", 4.0),

        # Response shaping
        calendar_max_lines=_get_int("CALENDAR_MAX_LINES", 20),
        general_max_lines=_get_int("GENERAL_MAX_LINES", 6),
        guidance_display_limit=_get_int("GUIDANCE_DISPLAY_LIMIT", 8),
    )


def init_config() -> Config:
    """
    Initialize and validate configuration.

    Call this at startup to fail fast if config is invalid.
    """
    config = get_config()
    config.validate()
    config.log_config()
    return config
