"""Text provider contract and the Anthropic-backed implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod

import anthropic
import structlog

from lifequest.errors import GenerationCredentialsError, GenerationFailedError

logger = structlog.get_logger()

_QUOTA_MARKERS = ("credit balance", "quota", "billing")


class TextProvider(ABC):
    """A single-shot prompt completion backend."""

    name: str = "base"

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Return the raw text completion for ``prompt``.

        Raises GenerationFailedError (or GenerationCredentialsError) on failure.
        """


def is_credentials_or_quota_error(exc: Exception) -> bool:
    """Authentication, permission and out-of-credit failures.

    These will not resolve by retrying; the operator has to fix the account
    or disable live generation.
    """
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _QUOTA_MARKERS)


class AnthropicProvider(TextProvider):
    """Claude Messages API provider."""

    name = "anthropic"

    def __init__(self, api_key: str, model: str, timeout: float = 30.0) -> None:
        self.model = model
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            if is_credentials_or_quota_error(exc):
                logger.warning(
                    "generation_provider_credentials_or_quota",
                    provider=self.name,
                    error=str(exc),
                    hint="set LQ_AI_ENABLED=false to use template content",
                )
                raise GenerationCredentialsError(str(exc)) from exc
            logger.warning("generation_provider_failed", provider=self.name, error_type=type(exc).__name__)
            raise GenerationFailedError(f"{self.name} request failed: {exc}") from exc

        texts = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        if not texts:
            raise GenerationFailedError(f"{self.name} returned no text content")
        return "".join(texts)
