"""Chat-completion backends that answer with a JSON object.

Every provider speaks the OpenAI chat-completions dialect: OpenAI itself,
OpenRouter and DeepSeek through the ``openai`` SDK, and local servers such as
Ollama over plain HTTP.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from openai import AsyncOpenAI

from smartledger.api.errors import ValidationError
from smartledger.config import Settings

_FENCED = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)

TEMPERATURE = 0.2


class BaseAIClient(ABC):
    """Interface for AI backends used by the insights service."""

    @abstractmethod
    async def complete_json(self, *, prompt: str, text: str) -> dict:
        """Return the model answer as a JSON-compatible dict."""


def chat_messages(prompt: str, text: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": prompt},
        {"role": "user", "content": text},
    ]


def parse_json_reply(reply: str) -> dict:
    """First JSON object in a model reply, with or without a code fence."""

    fenced = _FENCED.search(reply)
    candidate = (fenced.group(1) if fenced else reply).strip()
    start = candidate.find("{")
    if start == -1:
        raise ValidationError("AI response is not valid JSON")

    try:
        data, _ = json.JSONDecoder().raw_decode(candidate[start:])
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Failed to decode AI JSON response: {exc}") from exc

    if not isinstance(data, dict):
        raise ValidationError("AI response JSON must be an object")
    return data


class OpenAIClient(BaseAIClient):
    """Hosted OpenAI-compatible provider via the official SDK."""

    def __init__(self, *, api_key: str, model: str, base_url: Optional[str] = None, timeout: float = 45) -> None:
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self._model = model

    async def complete_json(self, *, prompt: str, text: str) -> dict:
        response = await self._client.chat.completions.create(
            model=self._model,
            temperature=TEMPERATURE,
            messages=chat_messages(prompt, text),
        )
        return parse_json_reply(response.choices[0].message.content or "")


class LocalLLMClient(BaseAIClient):
    """Self-hosted model behind an OpenAI-style ``/chat/completions`` route."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        timeout: float = 45,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def complete_json(self, *, prompt: str, text: str) -> dict:
        payload: dict[str, Any] = {
            "model": self._model,
            "temperature": TEMPERATURE,
            "messages": chat_messages(prompt, text),
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(f"{self._base_url}/chat/completions", json=payload)
            response.raise_for_status()
            body = response.json()

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValidationError(f"Unexpected local LLM response shape: {body}") from exc
        return parse_json_reply(content)


def build_ai_client(settings: Settings) -> Optional[BaseAIClient]:
    """Client for the configured provider, or None when it has no credentials."""

    provider = settings.ai_provider
    if provider == "local":
        return LocalLLMClient(
            base_url=settings.local_llm_base_url,
            model=settings.local_llm_model,
            timeout=settings.ai_timeout_seconds,
        )

    hosted = {
        "openai": (settings.openai_api_key, settings.openai_model, None),
        "openrouter": (settings.openrouter_api_key, settings.openrouter_model, settings.openrouter_base_url),
        "deepseek": (settings.deepseek_api_key, settings.deepseek_model, settings.deepseek_base_url),
    }
    api_key, model, base_url = hosted[provider]
    if not api_key:
        return None
    return OpenAIClient(api_key=api_key, model=model, base_url=base_url, timeout=settings.ai_timeout_seconds)
