from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Protocol, Sequence, TypedDict
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from focus_tracker.config.runtime import get_runtime_config
from focus_tracker.models.schemas import VisionMessage

_chat_runtime = get_runtime_config().mistral_chat


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class AIGatewayError(RuntimeError):
    """Raised for chat-completion request/response failures."""


class AIRateLimitError(AIGatewayError):
    """Raised when the provider answers HTTP 429."""


class ChatGateway(Protocol):
    def complete(self, history: Sequence[VisionMessage], system_prompt: str | None = None) -> str: ...


@dataclass(frozen=True)
class MistralChatConfig:
    model: str = _chat_runtime.model
    temperature: float = _chat_runtime.temperature
    top_p: float = _chat_runtime.top_p
    max_tokens: int = _chat_runtime.max_tokens
    timeout_seconds: float = _chat_runtime.timeout_seconds
    endpoint: str = _chat_runtime.endpoint


def build_chat_messages(
    history: Iterable[VisionMessage],
    system_prompt: str | None = None,
) -> list[ChatMessage]:
    messages: list[ChatMessage] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for message in history:
        messages.append({"role": message.role, "content": message.content})
    return messages


def normalize_content(content: Any, strip: bool = True) -> str:
    if isinstance(content, str):
        return content.strip() if strip else content

    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                text = item.get("text") or item.get("content")
                if isinstance(text, str):
                    parts.append(text)
            else:
                text = getattr(item, "text", None)
                if isinstance(text, str):
                    parts.append(text)
        joined = "".join(parts)
        return joined.strip() if strip else joined

    return ""


class MistralChatGateway:
    """
    Single-attempt chat-completions gateway.

    Sends the optional system prompt followed by every prior turn and returns
    the first choice's text. Every failure surfaces as ``AIGatewayError``;
    HTTP 429 as its ``AIRateLimitError`` subclass. No retries.
    """

    def __init__(self, api_key: str | None = None, config: MistralChatConfig | None = None) -> None:
        self.config = config or MistralChatConfig()
        self.api_key = (api_key or os.getenv("MISTRAL_API_KEY") or "").strip()
        if not self.api_key:
            raise ValueError("MISTRAL_API_KEY is required")

    def complete(self, history: Sequence[VisionMessage], system_prompt: str | None = None) -> str:
        return self.chat(build_chat_messages(history, system_prompt))

    def chat(self, messages: Iterable[ChatMessage]) -> str:
        payload = self._build_payload(list(messages))
        response_obj = self._post_json(payload)
        return self._extract_chat_text(response_obj)

    def _build_payload(self, messages: list[ChatMessage]) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "max_tokens": self.config.max_tokens,
            "stream": False,
        }

    def _build_request(self, payload: dict[str, Any]) -> Request:
        body = json.dumps(payload).encode("utf-8")
        return Request(
            url=self.config.endpoint,
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    def _post_json(self, payload: dict[str, Any]) -> dict[str, Any]:
        request = self._build_request(payload)

        try:
            with urlopen(request, timeout=self.config.timeout_seconds) as response:
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            raise self._http_error(exc) from exc
        except URLError as exc:
            raise AIGatewayError(f"Failed to reach chat API: {exc}") from exc
        except OSError as exc:
            raise AIGatewayError(f"Chat API connection failed: {exc}") from exc

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise AIGatewayError("Chat API returned invalid JSON") from exc

        if not isinstance(parsed, dict):
            raise AIGatewayError("Chat API returned an unexpected payload type")
        return parsed

    def _extract_chat_text(self, response_obj: dict[str, Any]) -> str:
        choices = response_obj.get("choices")
        if not isinstance(choices, list):
            raise AIGatewayError("Chat API response missing choices")
        if not choices:
            return ""

        first = choices[0]
        if not isinstance(first, dict):
            raise AIGatewayError("Chat API choice payload is invalid")

        message = first.get("message")
        if not isinstance(message, dict):
            return ""

        return normalize_content(message.get("content"), strip=True)

    def _http_error(self, exc: HTTPError) -> AIGatewayError:
        try:
            body = exc.read().decode("utf-8", errors="ignore")
        except (OSError, ValueError):
            body = ""

        detail = body.strip() or f"HTTP {exc.code}"
        if exc.code == 429:
            return AIRateLimitError(f"Chat API rate limit: {detail}")
        return AIGatewayError(f"Chat API error: {detail}")
