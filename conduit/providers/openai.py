"""OpenAI chat-completions backend (event-stream)."""

from __future__ import annotations

from typing import Any

from ..types import AIRequest, AIResponse, TokenUsage
from .base import DEFAULT_MAX_TOKENS, HTTPBackend, messages_to_dicts
from .streaming import EventStreamDecoder, StreamDecoder

API_URL = "https://api.openai.com/v1/chat/completions"


def _first_choice(envelope: dict[str, Any]) -> dict[str, Any]:
    choices = envelope.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return {}


def openai_delta(envelope: dict[str, Any]) -> str | None:
    delta = _first_choice(envelope).get("delta")
    return delta.get("content") if isinstance(delta, dict) else None


class OpenAIBackend(HTTPBackend):
    id = "openai"
    name = "OpenAI"
    default_models = ("gpt-4o", "gpt-4o-mini", "o1", "o3-mini")
    credential_id = "openai"

    def __init__(self, *args: Any, url: str = API_URL, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._url = url

    def _endpoint(self) -> str:
        return self._url

    def _headers(self, credential: str | None) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {credential}"}

    def _build_body(self, request: AIRequest, stream: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": request.model,
            "messages": messages_to_dicts(request.messages, request.system),
            "max_completion_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if stream:
            body["stream"] = True
        return body

    def _parse_response(self, data: dict[str, Any], request: AIRequest) -> AIResponse:
        message = _first_choice(data).get("message") or {}
        usage = data.get("usage") or {}
        return AIResponse(
            content=message.get("content") or "",
            model=data.get("model") or request.model,
            usage=TokenUsage(
                input_tokens=usage.get("prompt_tokens") or 0,
                output_tokens=usage.get("completion_tokens") or 0,
            ),
        )

    def _decoder(self) -> StreamDecoder:
        return EventStreamDecoder(openai_delta)
