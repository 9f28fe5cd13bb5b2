"""
Platform speech capabilities, expressed as injectable interfaces.

The browser exposes speech synthesis and recognition as global singletons.
Here they are abstract providers handed to the voice engine and the capture
controller, so tests can substitute fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from src.askvedic.language import RecognitionConfig


@dataclass(frozen=True)
class VoiceDescriptor:
    """A synthesis voice from the platform inventory (read-only snapshot)."""

    name: str
    lang: str
    placeholder: bool = False


@dataclass
class Utterance:
    """One discrete speech-synthesis request."""

    text: str
    voice: Optional[VoiceDescriptor] = None
    lang: str = "en-IN"
    rate: float = 0.85
    pitch: float = 1.1
    volume: float = 1.0


class SpeechSynthesisError(Exception):
    """
    Raised by `SpeechSynthesisPlatform.speak` when an utterance fails.

    `code` mirrors the platform error names: "interrupted", "canceled",
    "not-allowed", "network", "synthesis-failed", ...
    """

    def __init__(self, code: str, message: str = ""):
        self.code = (code or "unknown").strip().lower()
        super().__init__(message or self.code)


VoicesChangedListener = Callable[[], None]


class SpeechSynthesisPlatform(ABC):
    @abstractmethod
    def is_supported(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_voices(self) -> list[VoiceDescriptor]:
        raise NotImplementedError

    @abstractmethod
    def add_voices_changed_listener(self, listener: VoicesChangedListener) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_voices_changed_listener(self, listener: VoicesChangedListener) -> None:
        raise NotImplementedError

    @abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        """Resolve when the utterance ends; raise SpeechSynthesisError on failure."""
        raise NotImplementedError

    @abstractmethod
    def cancel(self) -> None:
        """Stop the current utterance and flush the queue. Must be idempotent."""
        raise NotImplementedError

    @property
    def speaking(self) -> bool:
        return False


@dataclass(frozen=True)
class RecognitionAlternative:
    transcript: str
    confidence: float = 0.0


@dataclass(frozen=True)
class RecognitionResult:
    alternatives: tuple[RecognitionAlternative, ...]
    is_final: bool = True


class RecognitionSession(ABC):
    """
    A single recognizer instance.

    The controller assigns the three callbacks before calling `start()`.
    """

    on_result: Optional[Callable[[list[RecognitionResult]], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_end: Optional[Callable[[], None]] = None

    @abstractmethod
    def start(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def abort(self) -> None:
        raise NotImplementedError


class SpeechRecognitionPlatform(ABC):
    @abstractmethod
    def is_supported(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create_session(self, config: RecognitionConfig) -> RecognitionSession:
        raise NotImplementedError
