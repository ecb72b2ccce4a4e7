"""
AI backends

Uniform chat/stream contract over heterogeneous LLM services:

- ClaudeBackend: Anthropic Messages API, event-stream
- OpenAIBackend: chat completions, event-stream
- OllamaBackend: local ``/api/chat``, newline-delimited JSON
"""

from .anthropic import ClaudeBackend
from .base import HTTPBackend
from .ollama import OllamaBackend
from .openai import OpenAIBackend
from .registry import AIProviderRegistry
from .streaming import (
    CancelToken, DeltaStream, EventStreamDecoder, NDJSONDecoder, run_cancellable,
)

__all__ = [
    "AIProviderRegistry",
    "CancelToken",
    "ClaudeBackend",
    "DeltaStream",
    "EventStreamDecoder",
    "HTTPBackend",
    "NDJSONDecoder",
    "OllamaBackend",
    "OpenAIBackend",
    "run_cancellable",
]
