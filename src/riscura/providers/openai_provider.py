"""OpenAI Chat Completions provider."""

from __future__ import annotations

import os
from typing import Optional

from ..models.provider import CompletionResult
from .base import BaseProvider


def _parse_chat(data: dict) -> tuple[Optional[str], dict]:
    content = data["choices"][0]["message"]["content"]
    usage = data.get("usage", {})
    return content, {
        "input": usage.get("prompt_tokens", 0),
        "output": usage.get("completion_tokens", 0),
    }


class OpenAIProvider(BaseProvider):
    name = "openai"
    API_URL = "https://api.openai.com/v1/chat/completions"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
        api_key = os.environ.get(env_var)
        if not api_key:
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {env_var}",
            )

        body = {
            "model": self.config.get("model", "gpt-4o-mini"),
            "max_tokens": self._max_tokens(max_tokens),
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        return await self._post(self.config.get("endpoint") or self.API_URL, body, _parse_chat, headers)
