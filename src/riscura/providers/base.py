"""AI provider abstraction with retry logic."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import httpx

from ..models.provider import CompletionResult
from ..utils.sanitize import sanitize_error

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
FATAL_STATUS = {400, 401, 403, 404}


@runtime_checkable
class AIProvider(Protocol):
    """Protocol that all AI providers must implement."""

    name: str

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult: ...

    async def complete_with_retry(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult: ...


class BaseProvider:
    """Base class with shared HTTP handling, retry logic and config access."""

    name: str = "base"

    def __init__(self, provider_config: dict, common_config: dict):
        self.config = provider_config
        self.common = common_config
        self.max_attempts = common_config.get("retry_attempts", 3)
        self.retry_delay = common_config.get("retry_delay_seconds", 5)
        self.timeout = common_config.get("timeout_seconds", 60)
        self.temperature = common_config.get("temperature", 0.2)

    def _max_tokens(self, requested: int) -> int:
        return requested or self.config.get("max_tokens", 2000)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        raise NotImplementedError

    async def _post(
        self,
        url: str,
        body: dict,
        parse: Callable[[dict], tuple[Optional[str], Optional[dict]]],
        headers: Optional[dict[str, str]] = None,
    ) -> CompletionResult:
        """POST a JSON body and turn the response into a CompletionResult.

        Errors never raise; they come back as success=False with the HTTP
        status (when there is one) so the retry loop can classify them.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body, headers=headers)
                response.raise_for_status()
                data: Any = response.json()
            content, tokens = parse(data)
            return CompletionResult(success=True, content=content, tokens_used=tokens)
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                status_code=e.response.status_code,
                error=f"{e.response.status_code} | {e.response.text}",
            )
        except httpx.TimeoutException as e:
            return CompletionResult(success=False, error=f"timeout: {e}")
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            return CompletionResult(success=False, error=str(e))

    @staticmethod
    def _classify(result: CompletionResult) -> tuple[bool, bool]:
        """Return (is_retryable, is_rate_limit) for a failed result."""
        if result.status_code is not None:
            return result.status_code in RETRYABLE_STATUS, result.status_code == 429

        error_msg = (result.error or "").lower()
        is_rate_limit = "429" in error_msg
        is_retryable = (
            is_rate_limit
            or any(code in error_msg for code in ("500", "502", "503", "504", "timeout", "timed out"))
        ) and not any(str(code) in error_msg for code in FATAL_STATUS)
        return is_retryable, is_rate_limit

    async def complete_with_retry(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        """Wrap complete() with retry logic including rate-limit handling."""
        rate_limit_max = max(self.max_attempts, 5)
        last_result: Optional[CompletionResult] = None

        for attempt in range(1, rate_limit_max + 1):
            result = await self.complete(system_prompt, user_prompt, max_tokens)
            last_result = result

            if result.success:
                return result

            is_retryable, is_rate_limit = self._classify(result)
            effective_max = rate_limit_max if is_rate_limit else self.max_attempts
            if not is_retryable or attempt >= effective_max:
                result.error = sanitize_error(result.error or "")
                return result

            # Rate limits: 30s base. Others: standard backoff.
            base_delay = 30 if is_rate_limit else self.retry_delay
            await asyncio.sleep(base_delay * min(attempt, 3))

        return last_result or CompletionResult(success=False, error="Max retries exceeded")


def get_ai_provider(
    config: dict,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    endpoint_override: Optional[str] = None,
) -> BaseProvider:
    """Factory function to create the configured AI provider."""
    ai_config = config.get("ai", {})
    provider_name = provider_override or ai_config.get("provider", "anthropic")

    provider_config = dict(ai_config.get(provider_name, {}))
    if model_override:
        provider_config["model"] = model_override
    if endpoint_override:
        provider_config["endpoint"] = endpoint_override

    # Common config is the ai section minus provider sub-configs
    common_config = {
        k: v
        for k, v in ai_config.items()
        if k not in ("anthropic", "openai", "ollama")
    }

    if provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, common_config)
    elif provider_name == "openai":
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, common_config)
    elif provider_name == "ollama":
        from .ollama import OllamaProvider
        return OllamaProvider(provider_config, common_config)
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}")
