"""Minimal chat-completion client for Ollama and OpenAI-compatible APIs."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import requests

from domain.errors import ExternalCapabilityFailure

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChatClientConfig:
    provider: str = "ollama"
    model: str = "llama3.1"
    temperature: float = 0.2
    timeout: float = 60.0
    ollama_url: str = "http://localhost:11434"
    openai_api_key: str | None = None
    openai_url: str = "https://api.openai.com/v1/chat/completions"


class ChatClient:
    """Sends a system + user prompt pair and returns the model's text."""

    def __init__(self, config: ChatClientConfig | None = None, session: requests.Session | None = None) -> None:
        self._config = config or ChatClientConfig()
        self._session = session or requests.Session()

    @property
    def config(self) -> ChatClientConfig:
        return self._config

    def complete(self, system_prompt: str, user_prompt: str, *, json_output: bool = False) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        try:
            if self._config.provider == "openai":
                content = self._call_openai(messages, json_output)
            elif self._config.provider == "ollama":
                content = self._call_ollama(messages, json_output)
            else:
                raise ExternalCapabilityFailure(f"Unknown LLM provider '{self._config.provider}'")
        except requests.RequestException as exc:
            logger.warning("LLM request to %s failed: %s", self._config.provider, exc)
            raise ExternalCapabilityFailure(f"LLM request failed: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ExternalCapabilityFailure(f"Unexpected LLM response shape: {exc}") from exc
        return (content or "").strip()

    def _call_ollama(self, messages: list[dict[str, str]], json_output: bool) -> str:
        body = {
            "model": self._config.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": self._config.temperature},
        }
        if json_output:
            body["format"] = "json"
        response = self._session.post(
            f"{self._config.ollama_url.rstrip('/')}/api/chat",
            json=body,
            timeout=self._config.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        return payload["message"]["content"]

    def _call_openai(self, messages: list[dict[str, str]], json_output: bool) -> str:
        api_key = self._config.openai_api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ExternalCapabilityFailure("Missing OpenAI API key.")
        body = {
            "model": self._config.model,
            "messages": messages,
            "temperature": self._config.temperature,
        }
        if json_output:
            body["response_format"] = {"type": "json_object"}
        response = self._session.post(
            self._config.openai_url,
            headers={"Authorization": f"Bearer {api_key}"},
            json=body,
            timeout=self._config.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        return payload["choices"][0]["message"]["content"]


__all__ = ["ChatClient", "ChatClientConfig"]
