"""
One-shot voice capture.

Each `capture()` opens a recognizer configured for the selected language,
waits for the first final result, an error, or the end of the session, and
closes it. A transcript is handed to `on_transcript` right away and submitted
through `on_submit` after a short delay, so the question field shows the
captured text before the request fires.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.askvedic.advisories import AdvisoryBoard, AdvisoryChannel
from src.askvedic.config import get_config
from src.askvedic.language import LanguageState, recognition_config
from src.askvedic.speech_types import (
    RecognitionResult,
    RecognitionSession,
    SpeechRecognitionPlatform,
)

logger = structlog.get_logger(__name__)

UNSUPPORTED_MESSAGE = "Mic input is not supported on this browser. Please type your question instead."
PERMISSION_DENIED_MESSAGE = (
    "Microphone access was denied. To ask by voice, allow microphone access for this "
    "site in your browser settings and try again."
)
PERMISSION_ERROR_CODES = frozenset({"not-allowed", "service-not-allowed"})
SILENT_ERROR_CODES = frozenset({"no-speech", "aborted"})


def first_final_transcript(results: list[RecognitionResult]) -> Optional[str]:
    """First alternative of the first final result."""
    for result in results or []:
        if result.is_final and result.alternatives:
            return result.alternatives[0].transcript
    return None


class VoiceCaptureController:
    def __init__(
        self,
        platform: Optional[SpeechRecognitionPlatform],
        language: LanguageState,
        *,
        advisories: Optional[AdvisoryBoard] = None,
        on_transcript: Optional[Callable[[str], None]] = None,
        on_submit: Optional[Callable[[str], Awaitable[Any]]] = None,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        self._platform = platform
        self._language = language
        self._advisories = advisories
        self.on_transcript = on_transcript
        self.on_submit = on_submit

        self.is_listening = False
        self.last_error: Optional[str] = None
        self._session: Optional[RecognitionSession] = None
        self._outcome: Optional[asyncio.Future] = None

    @property
    def is_supported(self) -> bool:
        if self._platform is None:
            return False
        try:
            return bool(self._platform.is_supported())
        except Exception as e:
            logger.warning("Speech recognition capability check failed", error=str(e))
            return False

    def _resolve(self, kind: str, payload: Any = None) -> None:
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result((kind, payload))

    def _on_result(self, results: list[RecognitionResult]) -> None:
        transcript = first_final_transcript(results)
        if transcript is not None:
            self._resolve("result", transcript)

    async def capture(self) -> Optional[str]:
        """
        Listen once. Returns the transcript, or None when nothing was captured.
        """
        if self.is_listening:
            logger.debug("Capture already in progress")
            return None

        if not self.is_supported:
            if self._advisories is not None:
                self._advisories.post(AdvisoryChannel.CAPTURE, UNSUPPORTED_MESSAGE, code="unsupported")
            return None

        settings = recognition_config(self._language.current)
        session = self._platform.create_session(settings)
        session.on_result = self._on_result
        session.on_error = lambda code: self._resolve("error", code)
        session.on_end = lambda: self._resolve("end")

        self._outcome = asyncio.get_running_loop().create_future()
        self._session = session
        self.is_listening = True
        self.last_error = None
        if self._advisories is not None:
            self._advisories.dismiss(AdvisoryChannel.CAPTURE)
        logger.info("Listening", lang=settings.lang, max_alternatives=settings.max_alternatives)

        try:
            session.start()
            kind, payload = await self._outcome
        except asyncio.CancelledError:
            self._close(session, abort=True)
            raise
        except Exception as e:
            logger.warning("Speech recognition failed to start", error=str(e))
            kind, payload = "error", "start-failed"
        finally:
            self.is_listening = False
            self._session = None
            self._outcome = None

        if kind == "error":
            self._handle_error(str(payload or "unknown"))
            return None
        if kind == "end":
            return None

        self._close(session)
        transcript = str(payload or "")
        logger.info("Heard", chars=len(transcript))
        if self.on_transcript is not None:
            self.on_transcript(transcript)

        if transcript.strip():
            await asyncio.sleep(self.config.capture_submit_delay_seconds)
            if self.on_submit is not None:
                await self.on_submit(transcript)
        return transcript

    def _handle_error(self, code: str) -> None:
        code = code.strip().lower()
        self.last_error = code
        if code in PERMISSION_ERROR_CODES:
            logger.warning("Microphone permission denied")
            if self._advisories is not None:
                self._advisories.post(
                    AdvisoryChannel.CAPTURE,
                    PERMISSION_DENIED_MESSAGE,
                    code=code,
                    persistent=True,
                    blocking=True,
                )
            return
        if code in SILENT_ERROR_CODES:
            logger.debug("Capture ended without speech", code=code)
            return
        logger.warning("Speech recognition error", code=code)

    def _close(self, session: RecognitionSession, *, abort: bool = False) -> None:
        try:
            if abort:
                session.abort()
            else:
                session.stop()
        except Exception as e:
            logger.debug("Recognizer close failed", error=str(e))

    def stop(self) -> None:
        """End the capture, keeping any result already produced."""
        session = self._session
        try:
            if session is not None:
                self._close(session)
        finally:
            self.is_listening = False
            self._resolve("end")

    def abort(self) -> None:
        """End the capture and discard any pending result."""
        session = self._session
        try:
            if session is not None:
                self._close(session, abort=True)
        finally:
            self.is_listening = False
            self._resolve("end")
