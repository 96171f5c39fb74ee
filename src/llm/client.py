"""Async LLM client: OpenAI (primary) with Anthropic fallback, retry and error mapping."""
from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple

from anthropic import APIError as AnthropicAPIError
from anthropic import APITimeoutError as AnthropicTimeoutError
from anthropic import AsyncAnthropic
from anthropic import RateLimitError as AnthropicRateLimitError
from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import Settings, get_settings
from core.exceptions import LLMAPIError, LLMRateLimitError, LLMTimeoutError
from core.logging_config import get_logger, log_external_call

LOGGER = get_logger(__name__)

ChatMessage = Dict[str, str]


def _create_openai_client(settings: Settings) -> Optional[AsyncOpenAI]:
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.openai_timeout_seconds,
        max_retries=0,  # We handle retries via tenacity
    )


def _create_anthropic_client(settings: Settings) -> Optional[AsyncAnthropic]:
    if not settings.anthropic_api_key:
        return None
    return AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.anthropic_timeout_seconds,
        max_retries=0,
    )


def split_system_messages(messages: Sequence[ChatMessage]) -> Tuple[str, List[ChatMessage]]:
    """Anthropic takes the system prompt separately from the chat turns."""
    system_parts = [m["content"] for m in messages if m.get("role") == "system"]
    chat = [m for m in messages if m.get("role") != "system"]
    return "\n\n".join(system_parts), chat


class LLMClient:
    """Unified chat client preferring OpenAI, falling back to Anthropic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.openai_client = _create_openai_client(self.settings)
        self.anthropic_client = _create_anthropic_client(self.settings)

        if self.openai_client:
            self.provider = "openai"
            LOGGER.info(f"LLM client initialized with OpenAI as primary (model: {self.settings.openai_model})")
        elif self.anthropic_client:
            self.provider = "anthropic"
            LOGGER.info(f"LLM client initialized with Anthropic (model: {self.settings.anthropic_model})")
        else:
            self.provider = None
            LOGGER.warning("No LLM provider configured - replies fall back to canned text")

    def is_available(self) -> bool:
        return self.provider is not None

    @retry(
        retry=retry_if_exception_type((LLMRateLimitError, LLMTimeoutError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        before_sleep=before_sleep_log(LOGGER, logging.WARNING),
        reraise=True,
    )
    async def generate_chat(
        self,
        messages: Sequence[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: int = 500,
    ) -> str:
        """
        Generate the next assistant message for a chat.

        Args:
            messages: OpenAI-style ``{"role", "content"}`` dicts, system first.
            temperature: Optional override for the provider temperature.
            max_tokens: Maximum tokens to generate.

        Returns:
            Generated text, stripped. Empty string when no provider is configured.

        Raises:
            LLMAPIError: If the API call fails.
            LLMRateLimitError: If the rate limit is exceeded.
            LLMTimeoutError: If the request times out.
        """
        if not self.is_available():
            LOGGER.warning("LLM client not available, returning empty string")
            return ""

        if self.provider == "openai":
            try:
                return await self._generate_openai(messages, temperature, max_tokens)
            except (LLMAPIError, LLMRateLimitError, LLMTimeoutError) as e:
                if not self.anthropic_client:
                    raise
                LOGGER.warning(f"OpenAI failed ({e}), attempting Anthropic fallback")
                return await self._generate_anthropic(messages, temperature, max_tokens)

        return await self._generate_anthropic(messages, temperature, max_tokens)

    async def _generate_openai(
        self,
        messages: Sequence[ChatMessage],
        temperature: Optional[float],
        max_tokens: int,
    ) -> str:
        start_time = time.perf_counter()
        success = False
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.settings.openai_model,
                messages=list(messages),
                temperature=temperature if temperature is not None else self.settings.openai_temperature,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content
            success = True
            return content.strip() if content else ""
        except RateLimitError as exc:
            raise LLMRateLimitError(f"Rate limit exceeded: {exc}") from exc
        except APITimeoutError as exc:
            raise LLMTimeoutError(f"Request timed out: {exc}") from exc
        except APIError as exc:
            raise LLMAPIError(f"API error: {exc}") from exc
        finally:
            log_external_call(
                LOGGER,
                service="openai",
                operation="chat_completion",
                success=success,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                model=self.settings.openai_model,
            )

    async def _generate_anthropic(
        self,
        messages: Sequence[ChatMessage],
        temperature: Optional[float],
        max_tokens: int,
    ) -> str:
        system_prompt, chat = split_system_messages(messages)
        start_time = time.perf_counter()
        success = False
        try:
            message = await self.anthropic_client.messages.create(
                model=self.settings.anthropic_model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=chat,
                temperature=temperature if temperature is not None else self.settings.anthropic_temperature,
            )
            text = "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
            success = True
            return text.strip()
        except AnthropicRateLimitError as exc:
            raise LLMRateLimitError(f"Rate limit exceeded: {exc}") from exc
        except AnthropicTimeoutError as exc:
            raise LLMTimeoutError(f"Request timed out: {exc}") from exc
        except AnthropicAPIError as exc:
            raise LLMAPIError(f"API error: {exc}") from exc
        finally:
            log_external_call(
                LOGGER,
                service="anthropic",
                operation="messages_create",
                success=success,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                model=self.settings.anthropic_model,
            )


# Global instance
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the global LLM client instance."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


def reset_llm_client() -> None:
    """Reset the global LLM client (useful for testing)."""
    global _llm_client
    _llm_client = None


__all__ = [
    "ChatMessage",
    "LLMClient",
    "get_llm_client",
    "reset_llm_client",
    "split_system_messages",
]
