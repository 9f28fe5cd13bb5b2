"""
Tests for language-to-voice matching.
"""

from src.askvedic.config import get_config
from src.askvedic.speech_types import VoiceDescriptor
from src.askvedic.voice_resolver import (
    PLACEHOLDER_VOICE_NAME,
    LanguageVoiceResolver,
    VoiceSelectionPolicy,
    choose_voice_for_text,
    is_female_voice_name,
    is_male_voice_name,
    resolve_voices,
)


class TestResolveVoices:
    def test_no_voices_gives_placeholder(self):
        result = resolve_voices("hi-IN", [])
        assert len(result) == 1
        assert result[0].placeholder
        assert result[0].name == PLACEHOLDER_VOICE_NAME

    def test_female_voice_preferred(self, indian_voices):
        result = resolve_voices("hi-IN", indian_voices)
        assert [v.name for v in result] == ["Microsoft Kalpana - Hindi (India)"]

    def test_male_voices_excluded_from_female_set(self, indian_voices):
        result = resolve_voices("en-IN", indian_voices)
        assert [v.name for v in result] == ["Microsoft Heera - English (India)", "Samantha"]

    def test_sparse_language_falls_back_to_regional_default(self, indian_voices):
        result = resolve_voices("kn-IN", indian_voices)
        assert [v.name for v in result] == ["Microsoft Heera - English (India)"]

    def test_sparse_language_falls_back_to_any_default_variant(self):
        voices = [VoiceDescriptor(name="Daniel", lang="en-GB"), VoiceDescriptor(name="Alex", lang="en-US")]
        result = resolve_voices("kn-IN", voices)
        assert [v.name for v in result] == ["Daniel", "Alex"]

    def test_non_sparse_language_does_not_fall_back(self):
        voices = [VoiceDescriptor(name="Samantha", lang="en-US")]
        result = resolve_voices("hi-IN", voices)
        assert result[0].placeholder

    def test_female_candidates_capped(self):
        voices = [VoiceDescriptor(name=f"Female voice {i}", lang="en-IN") for i in range(6)]
        assert len(resolve_voices("en-IN", voices)) == 4

    def test_unfiltered_fallback_takes_first_three(self):
        voices = [VoiceDescriptor(name=f"Voice {i}", lang="hi-IN") for i in range(5)]
        result = resolve_voices("hi-IN", voices)
        assert [v.name for v in result] == ["Voice 0", "Voice 1", "Voice 2"]

    def test_underscore_language_tags_match(self):
        voices = [VoiceDescriptor(name="Lekha", lang="hi_IN")]
        assert resolve_voices("hi-IN", voices)[0].name == "Lekha"


class TestVoiceNameHeuristics:
    def test_female_is_not_male(self):
        assert is_female_voice_name("Google UK English Female")
        assert not is_male_voice_name("Google UK English Female")

    def test_male_markers(self):
        assert is_male_voice_name("Microsoft Ravi - English (India)")
        assert is_male_voice_name("Google UK English Male")
        assert not is_female_voice_name("Google UK English Male")

    def test_policy_from_config(self, monkeypatch):
        monkeypatch.setenv("FEMALE_VOICE_HINTS", "priya,anjali")
        get_config.cache_clear()
        policy = VoiceSelectionPolicy.from_config(get_config())
        assert policy.female_name_hints == ("priya", "anjali")
        assert is_female_voice_name("Priya Neural", policy)
        assert not is_female_voice_name("Samantha", policy)


class TestChooseVoiceForText:
    def test_devanagari_text_prefers_hindi_voice(self, indian_voices):
        choice = choose_voice_for_text("आज एकादशी है", "en-IN", indian_voices)
        assert choice.voice.name == "Microsoft Kalpana - Hindi (India)"
        assert choice.required_language == "hi"
        assert not choice.fell_back
        assert choice.advisory == ""

    def test_english_text_uses_english_voice(self, indian_voices):
        choice = choose_voice_for_text("Sunrise is at 6 AM", "en-IN", indian_voices)
        assert choice.voice.name == "Microsoft Heera - English (India)"

    def test_missing_kannada_voice_persistent_advisory(self, indian_voices):
        choice = choose_voice_for_text("ಇಂದು ಅಮಾವಾಸ್ಯೆ", "kn-IN", indian_voices)
        assert choice.fell_back
        assert choice.persistent_advisory
        assert choice.voice.lang == "en-IN"
        assert "Kannada" in choice.advisory

    def test_missing_hindi_voice_transient_advisory(self):
        voices = [VoiceDescriptor(name="Heera", lang="en-IN")]
        choice = choose_voice_for_text("नमस्ते", "hi-IN", voices)
        assert choice.fell_back
        assert not choice.persistent_advisory
        assert choice.advisory == "Hindi voice not available on this device. Using English voice instead."
        assert choice.voice.name == "Heera"

    def test_no_voices_at_all(self):
        choice = choose_voice_for_text("नमस्ते", "hi-IN", [])
        assert choice.voice is None
        assert choice.fell_back
        assert choice.lang == "hi-IN"


class TestLanguageVoiceResolver:
    def test_recomputes_on_inventory_and_language(self, indian_voices):
        changes = []
        resolver = LanguageVoiceResolver(language="en-IN", on_change=changes.append)
        assert resolver.selected is None

        resolver.on_voices_changed(indian_voices)
        assert resolver.selected.name == "Microsoft Heera - English (India)"

        resolver.on_language_changed("hi-IN")
        assert resolver.selected.name == "Microsoft Kalpana - Hindi (India)"
        assert len(changes) == 2

    def test_latin_text_uses_selected_language_voice(self, indian_voices):
        resolver = LanguageVoiceResolver(language="hi-IN")
        resolver.on_voices_changed(indian_voices)
        choice = resolver.choose_for_text("Light a diya")
        assert choice.voice.name == "Microsoft Kalpana - Hindi (India)"
        assert not choice.fell_back
