"""
Assistant query orchestrator.

End-to-end lifecycle of one user question:

1. reject empty input
2. append the user message
3. translate to the pivot language (soft)
4. extract a location from the question
5. call the knowledge API with {question, location, calendar}
6. translate the answer back (soft), or post-process it in the pivot language
7. on failure, append a category-specific fallback message
8. schedule playback of the assistant message without waiting for it

Only one question is in flight at a time; overlapping submissions are
dropped, not queued.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from src.askvedic.config import get_config
from src.askvedic.history import ConversationHistory, Message
from src.askvedic.knowledge import (
    KnowledgeAPI,
    KnowledgeErrorKind,
    KnowledgeRequest,
    classify_knowledge_error,
)
from src.askvedic.language import LanguageState
from src.askvedic.location import extract_location_from_question
from src.askvedic.playback import PlaybackController
from src.askvedic.postprocess import process_perplexity_response
from src.askvedic.translation import TranslationGateway

logger = structlog.get_logger(__name__)

FALLBACK_MESSAGES: dict[KnowledgeErrorKind, str] = {
    KnowledgeErrorKind.MISSING_CREDENTIAL: (
        "I'm not able to reach the spiritual guidance service because it is not configured yet. "
        "Please try again later."
    ),
    KnowledgeErrorKind.UPSTREAM: (
        "The spiritual guidance service is having trouble right now. "
        "Please try again in a moment."
    ),
    KnowledgeErrorKind.GENERIC: (
        "I'm unable to respond right now. Please try again in a moment. "
        "Your spiritual journey continues with patience and devotion."
    ),
}
EMPTY_ANSWER_MESSAGE = "Sorry, I couldn't provide a response at this time."


@dataclass
class UserContext:
    """Values supplied by the location/preferences collaborator."""

    tracked_location: Optional[str] = None
    calendar: Optional[str] = None


@dataclass(frozen=True)
class AskOutcome:
    user_message: Message
    assistant_message: Message
    location: Optional[str] = None
    error_kind: Optional[KnowledgeErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


class AssistantQueryOrchestrator:
    def __init__(
        self,
        *,
        knowledge: KnowledgeAPI,
        translator: TranslationGateway,
        language: LanguageState,
        history: Optional[ConversationHistory] = None,
        playback: Optional[PlaybackController] = None,
        context: Optional[UserContext] = None,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        self.knowledge = knowledge
        self.translator = translator
        self.language = language
        self.history = history if history is not None else ConversationHistory()
        self.playback = playback
        self.context = context or UserContext()

        self.is_asking = False
        self.last_error: Optional[KnowledgeErrorKind] = None
        self._playback_tasks: set[asyncio.Task] = set()

    async def ask(self, question: str) -> Optional[AskOutcome]:
        """
        Run one question through the pipeline.

        Returns None when the input is empty or another question is in flight.
        Never raises for knowledge-API failures: those become a fallback
        assistant message.
        """
        text = (question or "").strip()
        if not text:
            return None
        if self.is_asking:
            logger.info("Question ignored, another is in flight")
            return None

        self.is_asking = True
        self.last_error = None
        try:
            return await self._ask(text)
        finally:
            self.is_asking = False

    async def _ask(self, text: str) -> AskOutcome:
        # Read once so a mid-request language switch cannot mix languages in one turn.
        active = self.language.current
        pivot = self.language.pivot
        translating = active != pivot

        user_message = self.history.append(Message.user(text))

        pivot_question = text
        if translating:
            pivot_question = await self.translator.translate(text, pivot, active)

        location = extract_location_from_question(pivot_question)
        request_location = location or self.context.tracked_location

        log = logger.bind(language=active, location=request_location)
        error_kind: Optional[KnowledgeErrorKind] = None
        try:
            result = await self.knowledge.ask(
                KnowledgeRequest(
                    question=pivot_question,
                    location=request_location,
                    calendar=self.context.calendar,
                )
            )
            answer = result.answer.strip() or EMPTY_ANSWER_MESSAGE
            displayed = answer
            if translating:
                displayed = await self.translator.translate(answer, active, pivot)
            if displayed == answer:
                # Still pivot-language text: no translation needed, or it failed.
                displayed = process_perplexity_response(
                    answer,
                    calendar_max_lines=self.config.calendar_max_lines,
                    general_max_lines=self.config.general_max_lines,
                )
            answer = displayed
            log.info("Question answered", chars=len(answer))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_kind = classify_knowledge_error(e)
            self.last_error = error_kind
            log.error("Knowledge request failed", error_kind=error_kind.value, error=str(e))
            answer = FALLBACK_MESSAGES[error_kind]
            if translating:
                answer = await self.translator.translate(answer, active, pivot)

        assistant_message = self.history.append(Message.assistant(answer))
        self._schedule_playback(assistant_message)

        return AskOutcome(
            user_message=user_message,
            assistant_message=assistant_message,
            location=request_location,
            error_kind=error_kind,
        )

    def _schedule_playback(self, message: Message) -> None:
        if self.playback is None or not message.content.strip():
            return
        task = asyncio.create_task(self._play_after_delay(message))
        self._playback_tasks.add(task)
        task.add_done_callback(self._playback_tasks.discard)

    async def _play_after_delay(self, message: Message) -> None:
        await asyncio.sleep(self.config.playback_delay_seconds)
        try:
            await self.playback.play_message(message.id, message.content)
        except Exception:
            logger.exception("Scheduled playback failed", message_id=message.id)

    async def wait_for_playback(self) -> None:
        """Wait for scheduled playback tasks (used by scripts and tests)."""
        if self._playback_tasks:
            await asyncio.gather(*list(self._playback_tasks), return_exceptions=True)

    def cancel_scheduled_playback(self) -> None:
        for task in list(self._playback_tasks):
            task.cancel()
        self._playback_tasks.clear()

    def clear_conversation(self) -> None:
        self.cancel_scheduled_playback()
        if self.playback is not None:
            self.playback.stop()
        self.history.clear()
        self.last_error = None
