"""
Ask session: the components of one "Ask VoiceVedic" screen wired together.

All three language-dependent subsystems (recognition locale, translation
pivot, synthesis voice) read the one `LanguageState` owned here.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog

from src.askvedic.advisories import AdvisoryBoard
from src.askvedic.capture import VoiceCaptureController
from src.askvedic.config import get_config
from src.askvedic.history import ConversationHistory
from src.askvedic.knowledge import KnowledgeAPI, create_knowledge_client
from src.askvedic.language import LanguageState, normalize_language_tag
from src.askvedic.orchestrator import AskOutcome, AssistantQueryOrchestrator, UserContext
from src.askvedic.playback import PlaybackController
from src.askvedic.sections import ParsedSections, parse_sections
from src.askvedic.speech_types import SpeechRecognitionPlatform, SpeechSynthesisPlatform
from src.askvedic.suggestions import SuggestionEngine
from src.askvedic.translation import TranslationGateway, create_translation_gateway
from src.askvedic.voice_engine import VoiceEngineManager
from src.askvedic.voice_resolver import LanguageVoiceResolver, VoiceSelectionPolicy

logger = structlog.get_logger(__name__)


class AskSession:
    def __init__(
        self,
        *,
        synthesis: Optional[SpeechSynthesisPlatform] = None,
        recognition: Optional[SpeechRecognitionPlatform] = None,
        knowledge: Optional[KnowledgeAPI] = None,
        translator: Optional[TranslationGateway] = None,
        history: Optional[ConversationHistory] = None,
        context: Optional[UserContext] = None,
        suggestions: Optional[SuggestionEngine] = None,
        config: Optional[Any] = None,
    ):
        self.config = config or get_config()
        self.question = ""

        self.language = LanguageState(
            current=normalize_language_tag(self.config.default_language),
            pivot=normalize_language_tag(self.config.pivot_language),
        )
        self.advisories = AdvisoryBoard(transient_seconds=self.config.transient_advisory_seconds)

        self.engine = VoiceEngineManager(synthesis, advisories=self.advisories, config=self.config)
        self.resolver = LanguageVoiceResolver(
            language=self.language.current,
            policy=VoiceSelectionPolicy.from_config(self.config),
        )
        self.engine.subscribe_voices(self.resolver.on_voices_changed)
        self._unsubscribe_language = self.language.subscribe(self.resolver.on_language_changed)

        self.playback = PlaybackController(
            self.engine,
            self.resolver,
            advisories=self.advisories,
            config=self.config,
        )
        self.orchestrator = AssistantQueryOrchestrator(
            knowledge=knowledge or create_knowledge_client(self.config),
            translator=translator or create_translation_gateway(self.config),
            language=self.language,
            history=history,
            playback=self.playback,
            context=context,
            config=self.config,
        )
        self.suggestions = suggestions or SuggestionEngine(self.config)
        self.capture = VoiceCaptureController(
            recognition,
            self.language,
            advisories=self.advisories,
            on_transcript=self._set_question,
            on_submit=self.ask,
            config=self.config,
        )

    @property
    def history(self) -> ConversationHistory:
        return self.orchestrator.history

    @property
    def is_asking(self) -> bool:
        return self.orchestrator.is_asking

    def _set_question(self, text: str) -> None:
        self.question = text

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        logger.info("Ask session mounted", language=self.language.current)
        await self.engine.initialize()
        if len(self.history) == 0:
            await self.suggestions.suggest()

    def unmount(self) -> None:
        """Cancel everything that could still produce sound or callbacks."""
        self.orchestrator.cancel_scheduled_playback()
        self.playback.stop()
        self.capture.abort()
        self.suggestions.cancel_pending()
        self.engine.teardown()
        logger.info("Ask session unmounted")

    async def on_visibility_change(self, visible: bool) -> None:
        if not visible:
            self.orchestrator.cancel_scheduled_playback()
            self.playback.stop()
            self.engine.teardown()
            return
        await self.engine.on_visibility_restored()

    async def close(self) -> None:
        self.unmount()
        self._unsubscribe_language()
        await self.orchestrator.knowledge.close()
        await self.orchestrator.translator.close()
        await self.suggestions.close()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def set_language(self, tag: str) -> bool:
        return self.language.set(tag)

    def on_question_changed(self, text: str) -> Optional[asyncio.Task]:
        self.question = text
        self.suggestions.show()
        if len(self.history) > 0 and text.strip():
            return None
        return self.suggestions.on_query_changed(text)

    async def ask(self, question: Optional[str] = None) -> Optional[AskOutcome]:
        text = self.question if question is None else question
        if text.strip() and not self.orchestrator.is_asking:
            self.question = ""
            self.suggestions.hide()
            self.suggestions.cancel_pending()
        return await self.orchestrator.ask(text)

    async def capture_question(self) -> Optional[str]:
        self.question = ""
        self.suggestions.hide()
        return await self.capture.capture()

    async def choose_suggestion(self, suggestion: str) -> Optional[AskOutcome]:
        self.question = suggestion
        self.suggestions.hide()
        await asyncio.sleep(self.config.suggestion_submit_delay_seconds)
        return await self.ask()

    async def play(self, message_id: str) -> None:
        message = self.history.get(message_id)
        if message is None:
            logger.debug("Play requested for unknown message", message_id=message_id)
            return
        await self.playback.play_message(message.id, message.content)

    def stop_playback(self) -> None:
        self.playback.stop()

    def sections_for(self, message_id: str) -> Optional[ParsedSections]:
        message = self.history.get(message_id)
        if message is None or message.role != "assistant":
            return None
        return parse_sections(message.content, self.config.guidance_display_limit)

    def clear_conversation(self) -> None:
        self.orchestrator.clear_conversation()
        self.suggestions.show()
