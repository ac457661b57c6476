"""Ollama local inference provider."""

from __future__ import annotations

from ..models.provider import CompletionResult
from .base import BaseProvider


class OllamaProvider(BaseProvider):
    name = "ollama"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        endpoint = self.config.get("endpoint", "http://localhost:11434")
        body = {
            "model": self.config.get("model", "llama3.1:8b"),
            "system": system_prompt,
            "prompt": user_prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self._max_tokens(max_tokens),
            },
        }
        return await self._post(
            f"{endpoint.rstrip('/')}/api/generate",
            body,
            lambda data: (data.get("response", ""), None),
        )
