from __future__ import annotations

import json
from typing import Any, Sequence

import httpx

from unit2b.core.config import Settings
from unit2b.core.errors import LLMUnavailableError
from unit2b.core.logger import get_logger

logger = get_logger("llm")


def _extract_text(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, list) and payload:
        return _extract_text(payload[0])
    if isinstance(payload, dict):
        choices = payload.get("choices") or []
        if choices:
            choice = choices[0]
            message = choice.get("message") or {}
            content = message.get("content")
            if content:
                return str(content)
            text = choice.get("text")
            if text:
                return str(text)
        for key in ("text", "result", "output", "generated_text"):
            value = payload.get(key)
            if value:
                return str(value)
    return ""


class LLMClient:
    """Client conversationnel: proxy, OpenRouter puis Hugging Face."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.timeout = float(self.settings.llm_timeout_sec)
        self.max_tokens = int(self.settings.llm_max_output_tokens)
        self.temperature = float(self.settings.llm_temperature)
        self.default_system = (
            f"You are {self.settings.assistant_name}, a concise useful voice assistant; "
            "answer briefly and clearly."
        )

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.llm_proxy_url or s.openrouter_api_key or (s.huggingface_api_key and s.huggingface_model))

    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Retourne la premiere reponse non vide parmi les fournisseurs configures."""
        messages = build_chat_messages(system=system or self.default_system, prompt=prompt)
        attempts: list[tuple[str, Any]] = []
        if self.settings.llm_proxy_url:
            attempts.append(("proxy", self._complete_proxy))
        if self.settings.openrouter_api_key:
            attempts.append(("openrouter", self._complete_openrouter))
        if self.settings.huggingface_api_key and self.settings.huggingface_model:
            attempts.append(("huggingface", self._complete_huggingface))
        if not attempts:
            raise LLMUnavailableError("No LLM provider configured")

        errors: list[str] = []
        timeout = httpx.Timeout(self.timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            for name, call in attempts:
                try:
                    text = (await call(client, prompt, messages)).strip()
                except (httpx.HTTPError, ValueError, RuntimeError) as exc:
                    logger.warning("LLM provider %s failed: %s", name, exc)
                    errors.append(f"{name}: {exc}")
                    continue
                if text:
                    logger.info("LLM answer from %s (%d chars)", name, len(text))
                    return text
                errors.append(f"{name}: empty answer")
        raise LLMUnavailableError("No LLM provider succeeded (" + "; ".join(errors) + ")")

    async def _complete_proxy(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        messages: Sequence[dict[str, str]],
    ) -> str:
        resp = await client.post(
            str(self.settings.llm_proxy_url),
            json={"prompt": prompt},
            headers={"Content-Type": "application/json"},
        )
        self._raise_for_status(resp, "Proxy")
        try:
            data = resp.json()
        except ValueError:
            return resp.text
        return _extract_text(data) or json.dumps(data)

    async def _complete_openrouter(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        messages: Sequence[dict[str, str]],
    ) -> str:
        url = f"{self.settings.openrouter_base_url.rstrip('/')}/chat/completions"
        payload: dict[str, Any] = {
            "model": self.settings.openrouter_model,
            "messages": list(messages),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.openrouter_api_key}",
        }
        resp = await client.post(url, json=payload, headers=headers)
        self._raise_for_status(resp, "OpenRouter")
        return _extract_text(resp.json())

    async def _complete_huggingface(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        messages: Sequence[dict[str, str]],
    ) -> str:
        url = f"https://api-inference.huggingface.co/models/{self.settings.huggingface_model}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.huggingface_api_key}",
        }
        resp = await client.post(
            url,
            json={"inputs": prompt, "options": {"wait_for_model": True}},
            headers=headers,
        )
        self._raise_for_status(resp, "HuggingFace")
        return _extract_text(resp.json())

    @staticmethod
    def _raise_for_status(resp: httpx.Response, provider: str) -> None:
        if resp.status_code >= 400:
            detail = resp.text.strip() or resp.reason_phrase or "HTTP error"
            raise RuntimeError(f"{provider} error {resp.status_code}: {detail[:200]}")


def build_chat_messages(*, system: str | None = None, prompt: str) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages
