"""Anthropic Claude backend (Messages API, event-stream)."""

from __future__ import annotations

from typing import Any

from ..types import AIRequest, AIResponse, TokenUsage
from .base import DEFAULT_MAX_TOKENS, HTTPBackend
from .streaming import EventStreamDecoder, StreamDecoder

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"


def claude_delta(envelope: dict[str, Any]) -> str | None:
    if envelope.get("type") != "content_block_delta":
        return None
    delta = envelope.get("delta")
    return delta.get("text") if isinstance(delta, dict) else None


class ClaudeBackend(HTTPBackend):
    id = "claude"
    name = "Anthropic Claude"
    default_models = (
        "claude-opus-4-6",
        "claude-sonnet-4-5-20250929",
        "claude-haiku-4-5-20251001",
    )
    credential_id = "anthropic"

    def __init__(self, *args: Any, url: str = API_URL, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._url = url

    def _endpoint(self) -> str:
        return self._url

    def _headers(self, credential: str | None) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": credential or "",
            "anthropic-version": API_VERSION,
        }

    def _build_body(self, request: AIRequest, stream: bool) -> dict[str, Any]:
        # System prompt is top-level here, never a message.
        body: dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in request.messages
                if m.role != "system"
            ],
        }
        system = [request.system] if request.system else []
        system += [m.content for m in request.messages if m.role == "system"]
        if system:
            body["system"] = "\n\n".join(system)
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if stream:
            body["stream"] = True
        return body

    def _parse_response(self, data: dict[str, Any], request: AIRequest) -> AIResponse:
        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
        usage = data.get("usage") or {}
        return AIResponse(
            content=text,
            model=data.get("model") or request.model,
            usage=TokenUsage(
                input_tokens=usage.get("input_tokens") or 0,
                output_tokens=usage.get("output_tokens") or 0,
            ),
        )

    def _decoder(self) -> StreamDecoder:
        return EventStreamDecoder(claude_delta)
