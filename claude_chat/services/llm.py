"""
Completion client for hosted chat models.

Supports two providers behind one ``complete`` call:
- Anthropic Messages API over plain httpx
- any OpenAI-compatible endpoint through the ``openai`` SDK

Transient failures (connection errors, HTTP 429 and 5xx) are retried with
exponential backoff; everything else surfaces as ``CompletionError`` at once.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, TypedDict

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

if TYPE_CHECKING:
    from claude_chat.models.ai_settings import AISettings

logger = logging.getLogger("claude_chat.services.llm")

ANTHROPIC_API_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_ATTEMPTS = 3


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class ChatTurn(TypedDict):
    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class CompletionSettings:
    """Per-request generation parameters."""

    model: str
    temperature: float
    max_tokens: int
    system_prompt: str = ""

    @classmethod
    def from_ai_settings(cls, ai_settings: "AISettings") -> "CompletionSettings":
        return cls(
            model=ai_settings.model,
            temperature=ai_settings.temperature,
            max_tokens=ai_settings.max_tokens,
            system_prompt=ai_settings.system_prompt,
        )


@dataclass(frozen=True)
class CompletionResult:
    text: str
    total_tokens: int


class CompletionError(Exception):
    """Raised when the provider cannot produce a completion."""

    def __init__(self, message: str, *, status_code: int | None = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def estimate_tokens(text: str) -> int:
    """Rough token estimate used for usage accounting: one and a half tokens per word."""

    words = len(text.split())
    return max(1, math.floor(words * 1.5))


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, CompletionError) and error.retryable


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class AICompletionClient:
    """Provider-agnostic completion client shared by the whole application."""

    def __init__(
        self,
        api_key: str,
        provider: LLMProvider | str = LLMProvider.ANTHROPIC,
        *,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_wait: wait_base | None = None,
        http_client: httpx.AsyncClient | None = None,
        openai_client: AsyncOpenAI | None = None,
    ) -> None:
        self.provider = LLMProvider(provider)
        self.max_attempts = max_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._http_client: httpx.AsyncClient | None = None
        self._openai_client: AsyncOpenAI | None = None

        if self.provider is LLMProvider.ANTHROPIC:
            self._http_client = http_client or httpx.AsyncClient(
                base_url=base_url or ANTHROPIC_API_URL,
                timeout=timeout,
            )
            self._api_key = api_key
        else:
            # retries are handled here, not inside the SDK
            self._openai_client = openai_client or AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
            )

        logger.info(
            "Completion client initialized",
            extra={"provider": self.provider.value, "max_attempts": max_attempts},
        )

    async def complete(
        self,
        messages: list[ChatTurn],
        settings: CompletionSettings,
    ) -> CompletionResult:
        """Send the conversation and return the assistant text with the token total."""

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_transient),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if self.provider is LLMProvider.ANTHROPIC:
                    result = await self._complete_anthropic(messages, settings)
                else:
                    result = await self._complete_openai(messages, settings)

        logger.info(
            "Completion finished",
            extra={
                "provider": self.provider.value,
                "model": settings.model,
                "total_tokens": result.total_tokens,
                "messages_count": len(messages),
            },
        )
        return result

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
        if self._openai_client is not None:
            await self._openai_client.close()

    async def _complete_anthropic(
        self,
        messages: list[ChatTurn],
        settings: CompletionSettings,
    ) -> CompletionResult:
        assert self._http_client is not None
        payload: dict[str, Any] = {
            "model": settings.model,
            "messages": [
                {"role": turn["role"], "content": [{"type": "text", "text": turn["content"]}]}
                for turn in messages
            ],
            "max_tokens": settings.max_tokens,
            "temperature": settings.temperature,
        }
        if settings.system_prompt:
            payload["system"] = settings.system_prompt

        try:
            response = await self._http_client.post(
                "/v1/messages",
                json=payload,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
            )
        except httpx.TransportError as error:
            raise CompletionError(f"Anthropic API unreachable: {type(error).__name__}", retryable=True) from error

        if response.status_code >= 400:
            raise CompletionError(
                f"Anthropic API error: {response.status_code}",
                status_code=response.status_code,
                retryable=_is_transient_status(response.status_code),
            )

        try:
            data = response.json()
            blocks = data.get("content") or []
            text = "".join(
                block.get("text", "") for block in blocks if block.get("type") == "text"
            )
            usage = data.get("usage") or {}
            total_tokens = int(usage.get("input_tokens", 0)) + int(usage.get("output_tokens", 0))
        except (ValueError, TypeError, AttributeError) as error:
            raise CompletionError("Anthropic API returned an unexpected payload") from error

        return CompletionResult(text=text, total_tokens=total_tokens)

    async def _complete_openai(
        self,
        messages: list[ChatTurn],
        settings: CompletionSettings,
    ) -> CompletionResult:
        assert self._openai_client is not None
        chat_messages: list[dict[str, str]] = []
        if settings.system_prompt:
            chat_messages.append({"role": "system", "content": settings.system_prompt})
        chat_messages.extend({"role": turn["role"], "content": turn["content"]} for turn in messages)

        try:
            response = await self._openai_client.chat.completions.create(  # type: ignore[call-overload]
                model=settings.model,
                messages=chat_messages,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
            )
        except (RateLimitError, APIConnectionError) as error:
            raise CompletionError(f"OpenAI API unavailable: {type(error).__name__}", retryable=True) from error
        except APIStatusError as error:
            raise CompletionError(
                f"OpenAI API error: {error.status_code}",
                status_code=error.status_code,
                retryable=_is_transient_status(error.status_code),
            ) from error
        except OpenAIError as error:
            raise CompletionError(f"OpenAI API error: {type(error).__name__}") from error

        if not response.choices:
            raise CompletionError("OpenAI API returned no choices")

        text = response.choices[0].message.content or ""
        total_tokens = response.usage.total_tokens if response.usage else 0
        return CompletionResult(text=text, total_tokens=total_tokens)

    def _log_retry(self, retry_state: Any) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Completion attempt failed, retrying",
            extra={
                "provider": self.provider.value,
                "attempt": retry_state.attempt_number,
                "error": str(error) if error else None,
            },
        )


__all__ = [
    "AICompletionClient",
    "ChatTurn",
    "CompletionError",
    "CompletionResult",
    "CompletionSettings",
    "LLMProvider",
    "estimate_tokens",
]
