"""
Conversation history for the Ask VoiceVedic session.

Messages are immutable once created. The list is append-only and is cleared
only by an explicit "clear conversation" action. Persistence belongs to the
parent collaborator, which observes changes through `on_change`.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Literal, Optional

Role = Literal["user", "assistant"]

_id_counter = itertools.count(1)


def new_message_id() -> str:
    """Epoch milliseconds plus a process-wide counter: unique and roughly ordered."""
    return f"{int(time.time() * 1000)}-{next(_id_counter)}"


@dataclass(frozen=True)
class Message:
    """A single turn in the conversation."""

    role: Role
    content: str
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role="assistant", content=content)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


class ConversationHistory:
    """Append-only message list shared with the persistence collaborator."""

    def __init__(
        self,
        messages: Optional[list[Message]] = None,
        on_change: Optional[Callable[[list[Message]], None]] = None,
    ):
        self._messages: list[Message] = list(messages or [])
        self._on_change = on_change

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        self._notify()
        return message

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def get(self, message_id: str) -> Optional[Message]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def clear(self) -> None:
        """Clear conversation history."""
        self._messages.clear()
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(list(self._messages))
