"""
Suggested questions for the ask input.

Local suggestions come from a keyword-routed table. When enabled, the hosted
`match-similar-questions` function is asked first; any failure there falls
back to the local list without surfacing an error.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx
import structlog

from src.askvedic.config import get_config

logger = structlog.get_logger(__name__)

MAX_SUGGESTIONS = 4
MIN_REMOTE_QUERY_LENGTH = 4
INITIAL_QUERY = "spiritual guidance festivals timing"

INITIAL_SUGGESTIONS: tuple[str, ...] = (
    "When is the next Amavasya?",
    "What is today's Rahu Kaal timing?",
    "When is Ekadashi this month?",
    "What is the auspicious muhurat for puja today?",
)

# (keywords, suggestions): the first route with a keyword in the query wins.
SUGGESTION_ROUTES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("amavasya", "new moon"),
        (
            "When is the next Amavasya?",
            "What should I do on Amavasya?",
            "What are the Amavasya timings this month?",
            "Can I start new work on Amavasya?",
        ),
    ),
    (
        ("ekadashi", "fast", "vrat"),
        (
            "When is Ekadashi this month?",
            "What are the Ekadashi fasting rules?",
            "When should I break the Ekadashi fast?",
            "Which Ekadashi is coming next?",
        ),
    ),
    (
        ("rahu", "kaal", "inauspicious"),
        (
            "What is today's Rahu Kaal timing?",
            "What should I avoid during Rahu Kaal?",
            "What is tomorrow's Rahu Kaal timing?",
            "What is Yamagandam today?",
        ),
    ),
    (
        ("diwali", "deepavali", "lakshmi"),
        (
            "When is Diwali this year?",
            "What is the Lakshmi Puja muhurat on Diwali?",
            "How should I prepare for Diwali puja?",
            "What are the five days of Diwali?",
        ),
    ),
    (
        ("muhurat", "auspicious", "shubh"),
        (
            "What is the auspicious muhurat for puja today?",
            "What is the Abhijit Muhurat today?",
            "Is today good for starting new work?",
            "When is Brahma Muhurtham tomorrow?",
        ),
    ),
    (
        ("panchang", "tithi", "nakshatra", "today"),
        (
            "What is today's Panchang?",
            "What is today's tithi?",
            "Which nakshatra is today?",
            "What are sunrise and sunset timings today?",
        ),
    ),
    (
        ("purnima", "full moon"),
        (
            "When is the next Purnima?",
            "What should I do on Purnima?",
            "What are the Purnima timings this month?",
            "Is Purnima good for Satyanarayan puja?",
        ),
    ),
)


def local_suggestions(query: str = "", limit: int = MAX_SUGGESTIONS) -> list[str]:
    lowered = (query or "").strip().lower()
    if not lowered:
        return list(INITIAL_SUGGESTIONS[:limit])
    for keywords, suggestions in SUGGESTION_ROUTES:
        if any(keyword in lowered for keyword in keywords):
            return list(suggestions[:limit])
    return list(INITIAL_SUGGESTIONS[:limit])


class SuggestionEngine:
    def __init__(
        self,
        config: Optional[Any] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config()
        self._client = client
        self._owns_client = client is None
        self._pending: Optional[asyncio.Task] = None
        self.suggestions: list[str] = local_suggestions()
        self.visible = True

    @property
    def remote_enabled(self) -> bool:
        return bool(
            self.config.suggestions_remote_enabled
            and self.config.supabase_url
            and self.config.supabase_anon_key
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.request_timeout_seconds)
        return self._client

    async def _fetch_remote(self, query: str) -> Optional[list[str]]:
        url = f"{self.config.supabase_url}/functions/v1/match-similar-questions"
        try:
            response = await self._get_client().post(
                url,
                json={"query": query},
                headers={"Authorization": f"Bearer {self.config.supabase_anon_key}"},
            )
            if response.status_code != 200:
                logger.warning("Failed to fetch suggestions", status=response.status_code)
                return None
            suggestions = response.json().get("suggestions") or []
            return [str(s) for s in suggestions if str(s).strip()][:MAX_SUGGESTIONS]
        except Exception as e:
            logger.warning("Error fetching suggestions", error=str(e))
            return None

    async def suggest(self, query: str = "") -> list[str]:
        """Suggestions for `query`; the initial list when it is empty."""
        query = (query or "").strip()
        if self.remote_enabled and (not query or len(query) >= MIN_REMOTE_QUERY_LENGTH):
            remote = await self._fetch_remote(query or INITIAL_QUERY)
            if remote:
                self.suggestions = remote
                return list(remote)

        self.suggestions = local_suggestions(query)
        return list(self.suggestions)

    async def _debounced(self, query: str) -> list[str]:
        await asyncio.sleep(self.config.suggestion_debounce_seconds)
        return await self.suggest(query)

    def on_query_changed(self, query: str) -> asyncio.Task:
        """
        Debounce typed input: only the last query within the window is looked up.
        """
        self.cancel_pending()
        self._pending = asyncio.create_task(self._debounced(query))
        return self._pending

    def cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def hide(self) -> None:
        self.visible = False

    def show(self) -> None:
        self.visible = True

    async def close(self) -> None:
        self.cancel_pending()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
