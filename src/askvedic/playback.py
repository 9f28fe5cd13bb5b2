"""
Speech playback for assistant messages.

At most one utterance is ever active: every play cancels whatever is speaking
first and waits a short grace period, because some platforms need a tick to
flush a cancellation. Playing the message that is already playing stops it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog

from src.askvedic.advisories import AdvisoryBoard, AdvisoryChannel
from src.askvedic.config import get_config
from src.askvedic.postprocess import clean_text_for_tts
from src.askvedic.speech_types import SpeechSynthesisError, Utterance
from src.askvedic.voice_engine import VoiceEngineManager
from src.askvedic.voice_resolver import LanguageVoiceResolver

logger = structlog.get_logger(__name__)

BENIGN_ERROR_CODES = frozenset({"interrupted", "canceled", "cancelled"})

PLAYBACK_ERROR_MESSAGES: dict[str, str] = {
    "not-allowed": (
        "Audio playback was blocked by the browser. Tap the play button again "
        "or allow audio for this site."
    ),
    "network": "Voice playback needs a network connection. Please check your connection and try again.",
    "synthesis-failed": "The voice could not read this answer aloud. You can still read it above.",
}
GENERIC_PLAYBACK_ERROR = "Voice playback stopped unexpectedly. Please try again."


def playback_error_message(code: str) -> Optional[str]:
    """User-facing copy for a playback failure; None for benign interruptions."""
    if code in BENIGN_ERROR_CODES:
        return None
    return PLAYBACK_ERROR_MESSAGES.get(code, GENERIC_PLAYBACK_ERROR)


class PlaybackController:
    def __init__(
        self,
        engine: VoiceEngineManager,
        resolver: LanguageVoiceResolver,
        *,
        advisories: Optional[AdvisoryBoard] = None,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        self._engine = engine
        self._resolver = resolver
        self._advisories = advisories

        self.playing_id: Optional[str] = None
        self.last_utterance: Optional[Utterance] = None
        # Bumped on every play/stop so a superseded attempt never clears newer state.
        self._generation = 0

    @property
    def is_playing(self) -> bool:
        return self.playing_id is not None

    def stop(self) -> None:
        """Cancel in-flight speech synchronously. Safe to call at any time."""
        self._generation += 1
        self.playing_id = None
        self._engine.cancel_speech()

    async def play_message(self, message_id: str, text: str) -> None:
        if self.playing_id is not None and self.playing_id == message_id:
            logger.debug("Playback toggled off", message_id=message_id)
            self.stop()
            return

        self._generation += 1
        generation = self._generation
        self.playing_id = message_id

        self._engine.cancel_speech()
        await asyncio.sleep(self.config.playback_grace_seconds)
        if generation != self._generation:
            return

        try:
            await self._speak(message_id, text)
        finally:
            if generation == self._generation:
                self.playing_id = None

    async def _speak(self, message_id: str, text: str) -> None:
        if not self._engine.can_speak:
            logger.debug("Playback skipped, voice engine cannot speak", state=self._engine.state.value)
            return

        speech_text = clean_text_for_tts(text)
        if not speech_text:
            return

        choice = self._resolver.choose_for_text(speech_text)
        if choice.advisory and self._advisories is not None:
            self._advisories.post(
                AdvisoryChannel.VOICE,
                choice.advisory,
                code=f"missing_voice_{choice.required_language}",
                persistent=choice.persistent_advisory,
            )

        utterance = Utterance(
            text=speech_text,
            voice=choice.voice,
            lang=choice.lang,
            rate=self.config.speech_rate,
            pitch=self.config.speech_pitch,
            volume=self.config.speech_volume,
        )
        self.last_utterance = utterance

        logger.info(
            "Speaking message",
            message_id=message_id,
            voice=choice.voice.name if choice.voice else None,
            lang=utterance.lang,
            chars=len(speech_text),
        )
        try:
            await self._engine.speak(utterance)
        except SpeechSynthesisError as e:
            self._handle_error(e)

    def _handle_error(self, error: SpeechSynthesisError) -> None:
        message = playback_error_message(error.code)
        if message is None:
            logger.debug("Playback interrupted", code=error.code)
            if self._advisories is not None:
                self._advisories.dismiss(AdvisoryChannel.PLAYBACK)
            return

        logger.warning("Playback failed", code=error.code, error=str(error))
        if self._advisories is None:
            return
        known = error.code in PLAYBACK_ERROR_MESSAGES
        self._advisories.post(
            AdvisoryChannel.PLAYBACK,
            message,
            code=error.code,
            persistent=known,
        )
