"""
Tests for configuration loading and validation.
"""

import dataclasses

import pytest

from src.askvedic.config import ConfigError, get_config


def test_values_from_environment():
    config = get_config()
    assert config.log_level == "DEBUG"
    assert config.default_language == "en-IN"
    assert config.knowledge_provider == "perplexity"
    assert config.perplexity_model == "sonar"
    assert config.voice_ready_timeout_seconds == 0.05
    assert config.knowledge_credential_set


def test_defaults(monkeypatch):
    for key in ("VOICE_READY_TIMEOUT_SECONDS", "PLAYBACK_GRACE_SECONDS", "PLAYBACK_DELAY_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    get_config.cache_clear()
    config = get_config()
    assert config.voice_ready_timeout_seconds == 3.0
    assert config.playback_grace_seconds == 0.1
    assert config.playback_delay_seconds == 0.3
    assert config.sparse_voice_languages == ("kn",)
    assert config.voice_fallback_chain == ("en-IN", "en")


def test_short_language_codes(monkeypatch):
    monkeypatch.setenv("DEFAULT_LANGUAGE", "kn")
    get_config.cache_clear()
    assert get_config().default_language == "kn-IN"


def test_list_values(monkeypatch):
    monkeypatch.setenv("SPARSE_VOICE_LANGUAGES", "kn, HI")
    get_config.cache_clear()
    assert get_config().sparse_voice_languages == ("kn", "hi")


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("PLAYBACK_DELAY_SECONDS", "soon")
    get_config.cache_clear()
    assert get_config().playback_delay_seconds == 0.3


def test_validate_rejects_unknown_provider():
    config = dataclasses.replace(get_config(), knowledge_provider="openai")
    with pytest.raises(ConfigError):
        config.validate()


def test_validate_rejects_unknown_language(monkeypatch):
    monkeypatch.setenv("DEFAULT_LANGUAGE", "fr-FR")
    get_config.cache_clear()
    with pytest.raises(ConfigError):
        get_config().validate()


def test_validate_allows_missing_credential():
    config = dataclasses.replace(get_config(), perplexity_api_key="")
    assert not config.knowledge_credential_set
    config.validate()


def test_supabase_credential():
    config = dataclasses.replace(get_config(), knowledge_provider="supabase")
    assert config.knowledge_credential_set
    assert not dataclasses.replace(config, supabase_anon_key="").knowledge_credential_set
