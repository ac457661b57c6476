"""Anthropic Messages API provider."""

from __future__ import annotations

import os
from typing import Optional

from ..models.provider import CompletionResult
from .base import BaseProvider


def _parse_messages(data: dict) -> tuple[Optional[str], dict]:
    text = next(
        (block.get("text") for block in data.get("content", []) if block.get("type") == "text"),
        None,
    )
    usage = data.get("usage", {})
    return text, {
        "input": usage.get("input_tokens", 0),
        "output": usage.get("output_tokens", 0),
    }


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    @property
    def api_key_env(self) -> str:
        return self.config.get("api_key_env", "ANTHROPIC_API_KEY")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        api_key = os.environ.get(self.api_key_env)
        if not api_key:
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {self.api_key_env}",
            )

        body = {
            "model": self.config.get("model", "claude-sonnet-4-5-20250929"),
            "max_tokens": self._max_tokens(max_tokens),
            "temperature": self.temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        headers = {
            "x-api-key": api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }
        return await self._post(self.config.get("endpoint") or self.API_URL, body, _parse_messages, headers)
