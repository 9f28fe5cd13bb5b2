"""
User-visible advisories.

Soft failures (voice engine degraded, voice missing, playback error, mic
problems) never block the conversation; they post an advisory instead. Each
channel holds at most one advisory. Transient ones dismiss themselves after a
fixed delay; persistent ones stay until the user dismisses them.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class AdvisoryChannel(str, Enum):
    ENGINE = "engine"
    VOICE = "voice"
    PLAYBACK = "playback"
    CAPTURE = "capture"


@dataclass(frozen=True)
class Advisory:
    channel: AdvisoryChannel
    message: str
    code: str = ""
    persistent: bool = False
    blocking: bool = False
    created_at: float = field(default_factory=time.time)


class AdvisoryBoard:
    def __init__(
        self,
        *,
        transient_seconds: float = 4.0,
        on_change: Optional[Callable[[dict[AdvisoryChannel, Advisory]], None]] = None,
    ):
        self.transient_seconds = transient_seconds
        self._on_change = on_change
        self._current: dict[AdvisoryChannel, Advisory] = {}
        self._timers: dict[AdvisoryChannel, asyncio.TimerHandle] = {}

    @property
    def current(self) -> dict[AdvisoryChannel, Advisory]:
        return dict(self._current)

    def get(self, channel: AdvisoryChannel) -> Optional[Advisory]:
        return self._current.get(channel)

    def post(
        self,
        channel: AdvisoryChannel,
        message: str,
        *,
        code: str = "",
        persistent: bool = False,
        blocking: bool = False,
        ttl: Optional[float] = None,
    ) -> Advisory:
        self._cancel_timer(channel)
        advisory = Advisory(
            channel=channel,
            message=message,
            code=code,
            persistent=persistent,
            blocking=blocking,
        )
        self._current[channel] = advisory
        logger.info("Advisory posted", channel=channel.value, code=code, persistent=persistent)

        if not persistent:
            delay = self.transient_seconds if ttl is None else ttl
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None and delay > 0:
                self._timers[channel] = loop.call_later(delay, self._expire, channel, advisory)

        self._notify()
        return advisory

    def dismiss(self, channel: AdvisoryChannel) -> None:
        self._cancel_timer(channel)
        if self._current.pop(channel, None) is not None:
            self._notify()

    def clear(self) -> None:
        for channel in list(self._timers):
            self._cancel_timer(channel)
        if self._current:
            self._current.clear()
            self._notify()

    def _expire(self, channel: AdvisoryChannel, advisory: Advisory) -> None:
        self._timers.pop(channel, None)
        if self._current.get(channel) is advisory:
            del self._current[channel]
            self._notify()

    def _cancel_timer(self, channel: AdvisoryChannel) -> None:
        timer = self._timers.pop(channel, None)
        if timer is not None:
            timer.cancel()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.current)
