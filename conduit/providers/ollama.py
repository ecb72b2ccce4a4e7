"""
Ollama backend

Local models over ``/api/chat``. No credential; the base URL comes from the
``ollama_url`` preference at call time. Streams newline-delimited JSON with no
end sentinel.
"""

from __future__ import annotations

from typing import Any

from ..types import AIRequest, AIResponse, TokenUsage
from .base import HTTPBackend, messages_to_dicts
from .streaming import NDJSONDecoder, StreamDecoder

DEFAULT_BASE_URL = "http://localhost:11434"
URL_PREFERENCE = "ollama_url"


def ollama_delta(envelope: dict[str, Any]) -> str | None:
    message = envelope.get("message")
    return message.get("content") if isinstance(message, dict) else None


class OllamaBackend(HTTPBackend):
    id = "ollama"
    name = "Ollama (Local)"
    default_models = ("llama3.2", "mistral", "codellama", "deepseek-r1")

    def __init__(self, *args: Any, base_url: str = DEFAULT_BASE_URL, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._default_base_url = base_url

    @property
    def base_url(self) -> str:
        return str(self._prefs.get(URL_PREFERENCE, self._default_base_url)).rstrip("/")

    def _endpoint(self) -> str:
        return f"{self.base_url}/api/chat"

    def _headers(self, credential: str | None) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _build_body(self, request: AIRequest, stream: bool) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if request.temperature is not None:
            options["temperature"] = request.temperature
        if request.max_tokens is not None:
            options["num_predict"] = request.max_tokens
        body: dict[str, Any] = {
            "model": request.model,
            "messages": messages_to_dicts(request.messages, request.system),
            "stream": stream,
        }
        if options:
            body["options"] = options
        return body

    def _parse_response(self, data: dict[str, Any], request: AIRequest) -> AIResponse:
        return AIResponse(
            content=ollama_delta(data) or "",
            model=data.get("model") or request.model,
            usage=TokenUsage(
                input_tokens=data.get("prompt_eval_count") or 0,
                output_tokens=data.get("eval_count") or 0,
            ),
        )

    def _decoder(self) -> StreamDecoder:
        return NDJSONDecoder(ollama_delta)
