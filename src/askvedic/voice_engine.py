"""
Speech-synthesis engine lifecycle.

Guarantees the session reaches a ready state (able to attempt playback, or
knowing definitively it cannot) without hanging:

    uninitialized -> ready                          voices already listed
    uninitialized -> waiting_for_voices -> ready    voices-changed event fired
    waiting_for_voices -> timed_out -> ready        degraded: no event in time
    uninitialized -> unsupported -> ready           disabled: no capability

Neither the unsupported nor the timed-out path is fatal. Both end in `ready`
with a non-blocking advisory and text interaction keeps working.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from src.askvedic.advisories import AdvisoryBoard, AdvisoryChannel
from src.askvedic.config import get_config
from src.askvedic.speech_types import (
    SpeechSynthesisError,
    SpeechSynthesisPlatform,
    Utterance,
    VoiceDescriptor,
)

logger = structlog.get_logger(__name__)

UNSUPPORTED_ADVISORY = (
    "Voice playback is not supported in this browser. You'll receive text responses only."
)
DEGRADED_ADVISORY = (
    "Voices are taking longer than usual to load. Answers will still appear as text "
    "and audio may start working shortly."
)


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    WAITING_FOR_VOICES = "waiting_for_voices"
    UNSUPPORTED = "unsupported"
    TIMED_OUT = "timed_out"
    READY = "ready"


class EngineMode(str, Enum):
    """How `ready` was reached."""

    FULL = "full"
    DEGRADED = "degraded"
    DISABLED = "disabled"


VoicesSubscriber = Callable[[list[VoiceDescriptor]], None]


class VoiceEngineManager:
    def __init__(
        self,
        platform: Optional[SpeechSynthesisPlatform],
        *,
        advisories: Optional[AdvisoryBoard] = None,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        self.ready_timeout = float(self.config.voice_ready_timeout_seconds)
        self._platform = platform
        self._advisories = advisories

        self._state = EngineState.UNINITIALIZED
        self._mode: Optional[EngineMode] = None
        self.transitions: list[EngineState] = [EngineState.UNINITIALIZED]

        self._voices: list[VoiceDescriptor] = []
        self._subscribers: list[VoicesSubscriber] = []

        self._init_task: Optional[asyncio.Task] = None
        self._voices_event: Optional[asyncio.Event] = None
        self._abandoned = False
        self._torn_down = False
        self._inventory_listener_attached = False
        self._one_shot_attached = False

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def mode(self) -> Optional[EngineMode]:
        return self._mode

    @property
    def is_ready(self) -> bool:
        return self._state == EngineState.READY

    @property
    def can_speak(self) -> bool:
        return self.is_ready and self._mode != EngineMode.DISABLED

    @property
    def voices(self) -> list[VoiceDescriptor]:
        return list(self._voices)

    @property
    def speaking(self) -> bool:
        if not self._supported():
            return False
        return bool(self._platform.speaking)

    def subscribe_voices(self, subscriber: VoicesSubscriber) -> None:
        self._subscribers.append(subscriber)

    def _supported(self) -> bool:
        if self._platform is None:
            return False
        try:
            return bool(self._platform.is_supported())
        except Exception as e:
            logger.warning("Speech synthesis capability check failed", error=str(e))
            return False

    def _transition(self, state: EngineState) -> None:
        if state == self._state:
            return
        logger.debug("Voice engine transition", previous=self._state.value, current=state.value)
        self._state = state
        self.transitions.append(state)

    def _become_ready(self, mode: EngineMode) -> None:
        self._mode = mode
        self._transition(EngineState.READY)
        logger.info("Voice engine ready", mode=mode.value, voices=len(self._voices))

    def _post(self, message: str, code: str, *, persistent: bool) -> None:
        if self._advisories is not None:
            self._advisories.post(AdvisoryChannel.ENGINE, message, code=code, persistent=persistent)

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def _refresh_inventory(self) -> list[VoiceDescriptor]:
        try:
            voices = list(self._platform.get_voices() or [])
        except Exception as e:
            logger.warning("Voice inventory query failed", error=str(e))
            voices = []
        self._voices = voices
        for subscriber in list(self._subscribers):
            try:
                subscriber(self.voices)
            except Exception:
                logger.exception("Voice subscriber failed")
        return voices

    def _handle_inventory_changed(self) -> None:
        voices = self._refresh_inventory()
        if voices and self._state == EngineState.READY and self._mode == EngineMode.DEGRADED:
            self._mode = EngineMode.FULL
            if self._advisories is not None:
                self._advisories.dismiss(AdvisoryChannel.ENGINE)
            logger.info("Voice engine recovered from degraded mode", voices=len(voices))

    def _handle_first_voices(self) -> None:
        self._detach_one_shot()
        if self._voices_event is not None:
            self._voices_event.set()

    def _attach_inventory_listener(self) -> None:
        if not self._inventory_listener_attached:
            self._platform.add_voices_changed_listener(self._handle_inventory_changed)
            self._inventory_listener_attached = True

    def _detach_one_shot(self) -> None:
        if self._one_shot_attached:
            self._one_shot_attached = False
            try:
                self._platform.remove_voices_changed_listener(self._handle_first_voices)
            except Exception as e:
                logger.warning("Failed to remove voices listener", error=str(e))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> EngineState:
        """
        Bring the engine to `ready` (or back to `uninitialized` if torn down
        while waiting). Concurrent callers share one attempt.
        """
        self._torn_down = False
        while self._state != EngineState.READY:
            if self._init_task is None or self._init_task.done():
                self._init_task = asyncio.create_task(self._initialize())

            await asyncio.shield(self._init_task)
            # An attempt abandoned by an earlier teardown is retried unless
            # the engine was torn down again while we waited.
            if self._state != EngineState.UNINITIALIZED or self._torn_down:
                break
        return self._state

    async def _initialize(self) -> None:
        self._abandoned = False

        if not self._supported():
            self._transition(EngineState.UNSUPPORTED)
            self._become_ready(EngineMode.DISABLED)
            self._post(UNSUPPORTED_ADVISORY, "unsupported", persistent=True)
            return

        self._attach_inventory_listener()
        if self._refresh_inventory():
            self._become_ready(EngineMode.FULL)
            return

        self._transition(EngineState.WAITING_FOR_VOICES)
        self._voices_event = asyncio.Event()
        self._platform.add_voices_changed_listener(self._handle_first_voices)
        self._one_shot_attached = True

        try:
            await asyncio.wait_for(self._voices_event.wait(), timeout=self.ready_timeout)
        except asyncio.TimeoutError:
            self._detach_one_shot()
            if self._abandoned:
                self._transition(EngineState.UNINITIALIZED)
                return
            logger.warning("Voices did not load in time", timeout_s=self.ready_timeout)
            self._transition(EngineState.TIMED_OUT)
            self._become_ready(EngineMode.DEGRADED)
            self._post(DEGRADED_ADVISORY, "voices_timeout", persistent=False)
            return
        finally:
            self._voices_event = None

        if self._abandoned:
            self._transition(EngineState.UNINITIALIZED)
            return

        self._refresh_inventory()
        self._become_ready(EngineMode.FULL)

    async def on_visibility_restored(self) -> EngineState:
        """
        Some browsers delay voice enumeration until the tab has focus: retry
        an initialization that never completed, and re-attach listeners that
        a page-hide teardown removed.
        """
        if self._state != EngineState.READY:
            if self._state == EngineState.WAITING_FOR_VOICES and self._platform is not None:
                if self._refresh_inventory() and self._voices_event is not None:
                    self._voices_event.set()
            return await self.initialize()

        if self._mode != EngineMode.DISABLED:
            self._attach_inventory_listener()
            self._handle_inventory_changed()
        return self._state

    def cancel_speech(self) -> None:
        """Cancel in-flight speech. Synchronous and safe to call redundantly."""
        if not self._supported():
            return
        try:
            self._platform.cancel()
        except Exception as e:
            logger.warning("Speech cancel failed", error=str(e))

    def teardown(self) -> None:
        """
        Cancel speech and remove every registered listener. Idempotent.

        A pending voice wait is abandoned and the engine returns to
        `uninitialized`, so a later `on_visibility_restored()` retries.
        """
        self._torn_down = True
        self.cancel_speech()

        if self._platform is not None:
            self._detach_one_shot()
            if self._inventory_listener_attached:
                self._inventory_listener_attached = False
                try:
                    self._platform.remove_voices_changed_listener(self._handle_inventory_changed)
                except Exception as e:
                    logger.warning("Failed to remove voices listener", error=str(e))

        if self._voices_event is not None:
            self._abandoned = True
            self._voices_event.set()

    async def speak(self, utterance: Utterance) -> None:
        if not self.can_speak:
            raise SpeechSynthesisError("not-supported", "Speech synthesis is not available")
        await self._platform.speak(utterance)
