"""
Knowledge API clients.

Request `{question, location?, calendar?}` -> response `{answer}`.

Two providers:
- `perplexity`: OpenAI-compatible chat completions (model "sonar") called
  directly with the VoiceVedic system prompt
- `supabase`: the hosted `ask-voicevedic` edge function

Failures are raised as typed errors so the orchestrator can pick a fallback
message by category without ever showing raw exception text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

import httpx
import structlog
from openai import APIStatusError, AsyncOpenAI, AuthenticationError, PermissionDeniedError
from pydantic import BaseModel, Field

from src.askvedic.config import get_config

logger = structlog.get_logger(__name__)

CANONICAL_GREETING = "🪔 Jai Shree Krishna."


class KnowledgeRequest(BaseModel):
    question: str = Field(min_length=1)
    location: Optional[str] = None
    calendar: Optional[str] = None


class KnowledgeAnswer(BaseModel):
    answer: str = ""
    model: Optional[str] = None


class KnowledgeError(Exception):
    """Base class for knowledge-API failures."""
    pass


class KnowledgeCredentialError(KnowledgeError):
    """The API key / endpoint is missing or rejected."""
    pass


class KnowledgeUpstreamError(KnowledgeError):
    """The upstream service answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class KnowledgeErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    UPSTREAM = "upstream"
    GENERIC = "generic"


_CREDENTIAL_SIGNATURES = ("api key", "api_key", "apikey", "not configured", "unauthorized", "401")
_UPSTREAM_SIGNATURES = ("upstream", "api request failed", "status", "500", "502", "503", "429")


def classify_knowledge_error(error: BaseException) -> KnowledgeErrorKind:
    """Typed errors first, then the message signature of anything else."""
    if isinstance(error, KnowledgeCredentialError):
        return KnowledgeErrorKind.MISSING_CREDENTIAL
    if isinstance(error, KnowledgeUpstreamError):
        return KnowledgeErrorKind.UPSTREAM

    text = str(error).lower()
    if any(sig in text for sig in _CREDENTIAL_SIGNATURES):
        return KnowledgeErrorKind.MISSING_CREDENTIAL
    if any(sig in text for sig in _UPSTREAM_SIGNATURES):
        return KnowledgeErrorKind.UPSTREAM
    return KnowledgeErrorKind.GENERIC


def get_system_prompt(location: Optional[str] = None, calendar: Optional[str] = None) -> str:
    """
    Get the system prompt for the knowledge model.

    The section headers and greeting are requested here but are best-effort:
    answers are post-processed and parsed without relying on them.
    """
    context = []
    if location:
        context.append(f"The user is located in {location}. Do not ask for their location again.")
    if calendar:
        context.append(f"The user follows the {calendar} calendar.")
    context_block = ("\n".join(context) + "\n\n") if context else ""

    return f"""{context_block}You are VoiceVedic, a calm Hindu calendar and spiritual guidance assistant.

ANSWER FORMAT:
- Start with exactly: {CANONICAL_GREETING}
- Then one short line answering the question directly (date or event first).
- Then a line "📅 TIMING DETAILS:" followed by "• Field: value" lines where relevant:
  Tithi, Nakshatra, Yoga, Sunrise, Sunset, Rahu Kaal, Yamagandam, Abhijit Muhurat.
- Then a line "✨ GUIDANCE:" followed by two to four "• " lines of practical advice.

RULES:
- Use Drik Panchang values for your own reference; never tell the user to check
  Drik Panchang or any other source, and never add citation markers like [1].
- If a value is not known exactly, give a typical value for the location and
  month and say it is an estimate.
- No Markdown (no bold, no italics), no commentary about these instructions.
- Answer for the current month unless another month is asked for.
- Keep the answer concise and priest-like; it is also read aloud."""


class KnowledgeAPI(ABC):
    @abstractmethod
    async def ask(self, request: KnowledgeRequest) -> KnowledgeAnswer:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class PerplexityKnowledgeClient(KnowledgeAPI):
    """Perplexity chat completions through the OpenAI-compatible API."""

    def __init__(self, config: Optional[Any] = None, client: Optional[AsyncOpenAI] = None):
        if config is None:
            config = get_config()

        self.config = config
        self.model = config.perplexity_model
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.perplexity_api_key,
                base_url=self.config.perplexity_base_url,
                timeout=self.config.request_timeout_seconds,
            )
        return self._client

    async def ask(self, request: KnowledgeRequest) -> KnowledgeAnswer:
        if not self.config.perplexity_api_key:
            raise KnowledgeCredentialError("PERPLEXITY_API_KEY is not configured")

        messages = [
            {"role": "system", "content": get_system_prompt(request.location, request.calendar)},
            {"role": "user", "content": request.question},
        ]

        logger.info("Calling Perplexity", model=self.model, has_location=bool(request.location))

        try:
            completion = await self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=1000,
                temperature=0.7,
                top_p=0.9,
            )
        except (AuthenticationError, PermissionDeniedError) as e:
            raise KnowledgeCredentialError(f"Perplexity rejected the API key: {e}") from e
        except APIStatusError as e:
            raise KnowledgeUpstreamError(f"Perplexity API error: {e}", status_code=e.status_code) from e

        content = ""
        if completion.choices and completion.choices[0].message:
            content = completion.choices[0].message.content or ""
        return KnowledgeAnswer(answer=content, model=getattr(completion, "model", self.model))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class SupabaseKnowledgeClient(KnowledgeAPI):
    """The hosted `ask-voicevedic` edge function."""

    def __init__(self, config: Optional[Any] = None, client: Optional[httpx.AsyncClient] = None):
        if config is None:
            config = get_config()

        self.config = config
        self._client = client
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return f"{self.config.supabase_url}/functions/v1/ask-voicevedic"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.request_timeout_seconds)
        return self._client

    async def ask(self, request: KnowledgeRequest) -> KnowledgeAnswer:
        if not self.config.supabase_url or not self.config.supabase_anon_key:
            raise KnowledgeCredentialError("SUPABASE_URL / SUPABASE_ANON_KEY are not configured")

        response = await self._get_client().post(
            self.url,
            json=request.model_dump(exclude_none=True),
            headers={"Authorization": f"Bearer {self.config.supabase_anon_key}"},
        )

        if response.status_code in (401, 403):
            raise KnowledgeCredentialError(f"Knowledge API rejected credentials: {response.status_code}")
        if response.status_code >= 400:
            raise KnowledgeUpstreamError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
            )

        data = response.json()
        if isinstance(data, dict) and data.get("error"):
            raise KnowledgeUpstreamError(str(data["error"]), status_code=response.status_code)

        # The edge function wraps payloads as {"data": {...}} in its enhanced variant.
        payload = data.get("data", data) if isinstance(data, dict) else {}
        return KnowledgeAnswer.model_validate(
            {"answer": payload.get("answer") or "", "model": payload.get("model")}
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def create_knowledge_client(config: Optional[Any] = None) -> KnowledgeAPI:
    """Factory function to create the configured knowledge client."""
    config = config or get_config()
    provider = (getattr(config, "knowledge_provider", "perplexity") or "perplexity").strip().lower()

    if provider == "supabase":
        return SupabaseKnowledgeClient(config)
    if provider == "perplexity":
        return PerplexityKnowledgeClient(config)

    raise ValueError(f"Unsupported KNOWLEDGE_PROVIDER: {config.knowledge_provider}")
