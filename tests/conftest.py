"""
Pytest configuration and fixtures.
"""

import asyncio
import os
from typing import Optional
from unittest.mock import patch

import pytest

from src.askvedic.knowledge import KnowledgeAnswer, KnowledgeAPI, KnowledgeRequest
from src.askvedic.speech_types import (
    RecognitionAlternative,
    RecognitionResult,
    RecognitionSession,
    SpeechRecognitionPlatform,
    SpeechSynthesisError,
    SpeechSynthesisPlatform,
    VoiceDescriptor,
)
from src.askvedic.translation import TranslationProvider


@pytest.fixture(autouse=True)
def mock_env_vars():
    """Mock environment variables for tests."""
    env_vars = {
        "LOG_LEVEL": "DEBUG",
        "DEFAULT_LANGUAGE": "en-IN",
        "KNOWLEDGE_PROVIDER": "perplexity",
        "PERPLEXITY_API_KEY": "test_perplexity_key",
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_ANON_KEY": "test_anon_key",
        "GOOGLE_TRANSLATE_API_KEY": "",
        "VOICE_READY_TIMEOUT_SECONDS": "0.05",
        "PLAYBACK_GRACE_SECONDS": "0",
        "PLAYBACK_DELAY_SECONDS": "0",
        "CAPTURE_SUBMIT_DELAY_SECONDS": "0",
        "SUGGESTION_SUBMIT_DELAY_SECONDS": "0",
        "SUGGESTION_DEBOUNCE_SECONDS": "0.01",
        "SUGGESTIONS_REMOTE_ENABLED": "false",
        "TRANSIENT_ADVISORY_SECONDS": "0.05",
    }

    with patch.dict(os.environ, env_vars):
        # Clear config cache
        from src.askvedic.config import get_config
        get_config.cache_clear()
        yield
        get_config.cache_clear()


class FakeSynthesis(SpeechSynthesisPlatform):
    """In-memory speech synthesis. With `hold=True` an utterance lasts until finished or cancelled."""

    def __init__(self, voices=None, *, supported: bool = True, hold: bool = False):
        self.voices = list(voices or [])
        self.supported = supported
        self.hold = hold
        self.fail_with: Optional[str] = None
        self.listeners = []
        self.spoken = []
        self.cancel_count = 0
        self._current: Optional[asyncio.Future] = None

    def is_supported(self) -> bool:
        return self.supported

    def get_voices(self):
        return list(self.voices)

    def add_voices_changed_listener(self, listener) -> None:
        self.listeners.append(listener)

    def remove_voices_changed_listener(self, listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def fire_voices_changed(self, voices=None) -> None:
        if voices is not None:
            self.voices = list(voices)
        for listener in list(self.listeners):
            listener()

    async def speak(self, utterance) -> None:
        self.spoken.append(utterance)
        if self.fail_with:
            raise SpeechSynthesisError(self.fail_with)
        if not self.hold:
            return
        self._current = asyncio.get_running_loop().create_future()
        await self._current

    def finish(self) -> None:
        if self._current is not None and not self._current.done():
            self._current.set_result(None)

    def cancel(self) -> None:
        self.cancel_count += 1
        if self._current is not None and not self._current.done():
            self._current.set_exception(SpeechSynthesisError("interrupted"))

    @property
    def speaking(self) -> bool:
        return self._current is not None and not self._current.done()


class FakeRecognitionSession(RecognitionSession):
    def __init__(self, config):
        self.config = config
        self.started = False
        self.stopped = False
        self.aborted = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def abort(self) -> None:
        self.aborted = True

    def emit_result(self, transcript: str, *, is_final: bool = True) -> None:
        result = RecognitionResult(
            alternatives=(RecognitionAlternative(transcript=transcript, confidence=0.9),),
            is_final=is_final,
        )
        self.on_result([result])

    def emit_error(self, code: str) -> None:
        self.on_error(code)

    def emit_end(self) -> None:
        self.on_end()


class FakeRecognition(SpeechRecognitionPlatform):
    def __init__(self, *, supported: bool = True):
        self.supported = supported
        self.sessions = []

    def is_supported(self) -> bool:
        return self.supported

    def create_session(self, config):
        session = FakeRecognitionSession(config)
        self.sessions.append(session)
        return session


class FakeKnowledge(KnowledgeAPI):
    def __init__(self, answer: str = "", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.requests = []
        self.gate: Optional[asyncio.Event] = None

    async def ask(self, request: KnowledgeRequest) -> KnowledgeAnswer:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return KnowledgeAnswer(answer=self.answer, model="sonar")


class FakeTranslationProvider(TranslationProvider):
    def __init__(self, table=None, error: Optional[Exception] = None):
        self.table = dict(table or {})
        self.error = error
        self.calls = []

    async def translate(self, texts, target, source="auto"):
        self.calls.append((list(texts), target, source))
        if self.error is not None:
            raise self.error
        return [self.table.get(text, f"[{target}] {text}") for text in texts]


@pytest.fixture
def indian_voices():
    return [
        VoiceDescriptor(name="Google हिन्दी", lang="hi-IN"),
        VoiceDescriptor(name="Microsoft Heera - English (India)", lang="en-IN"),
        VoiceDescriptor(name="Microsoft Ravi - English (India)", lang="en-IN"),
        VoiceDescriptor(name="Microsoft Kalpana - Hindi (India)", lang="hi-IN"),
        VoiceDescriptor(name="Samantha", lang="en-US"),
        VoiceDescriptor(name="Alex", lang="en-US"),
    ]


@pytest.fixture
def fake_synthesis_cls():
    return FakeSynthesis


@pytest.fixture
def fake_recognition_cls():
    return FakeRecognition


@pytest.fixture
def fake_knowledge_cls():
    return FakeKnowledge


@pytest.fixture
def fake_translation_provider_cls():
    return FakeTranslationProvider


@pytest.fixture
def calendar_answer():
    """Raw upstream answer with scratch reasoning before the greeting."""
    return "\n".join([
        "Let's tackle this question about Amavasya in Mumbai.",
        "🪔 Jai Shree Krishna.",
        "The next Amavasya is on **Tuesday**, 21 October 2025.",
        "📅 TIMING DETAILS:",
        "• Tithi: Amavasya from 5:54 PM Oct 20 to 7:50 PM Oct 21",
        "• Sunrise: 6:28 AM",
        "[3] please consult drik panchang for more details",
        "✨ GUIDANCE:",
        "• Offer water and sesame to ancestors. Light a diya in the evening. Keep the home calm.",
    ])
