"""Collaborator contracts the runtime consumes, plus in-memory stand-ins.

Persistence, clipboard access and vector search live outside the core. The
runtime only calls the protocols below; the in-memory classes back tests and
headless use.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from .types import ConversationMessage
from .types.context import now_iso

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
NEW_CHAT_TITLE = "New Chat"


@runtime_checkable
class PreferenceStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def get_api_key(self, backend_id: str) -> str | None: ...


@runtime_checkable
class ConversationStore(Protocol):
    def get(self, conversation_id: str) -> Conversation | None: ...
    def get_all(self) -> list[Conversation]: ...
    def add_message(
        self, conversation_id: str, role: Literal["user", "assistant"], content: str,
        model: str | None = None,
    ) -> ConversationMessage: ...


@runtime_checkable
class VectorStore(Protocol):
    def search(self, query: str, limit: int = 5) -> list[dict[str, Any]]: ...


@runtime_checkable
class ClipboardSource(Protocol):
    async def read(self) -> str | None: ...


class InMemoryPreferences:
    API_KEY_PREFIX = "api_key."

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    @classmethod
    def from_env(cls, **overrides: Any) -> InMemoryPreferences:
        prefs = cls(overrides)
        for backend, var in (("anthropic", "ANTHROPIC_API_KEY"), ("openai", "OPENAI_API_KEY")):
            if os.environ.get(var) and prefs.get_api_key(backend) is None:
                prefs.set_api_key(backend, os.environ[var])
        return prefs

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def get_all(self) -> dict[str, Any]:
        return dict(self._values)

    def get_api_key(self, backend_id: str) -> str | None:
        return self.get(f"{self.API_KEY_PREFIX}{backend_id}") or None

    def set_api_key(self, backend_id: str, key: str) -> None:
        self.set(f"{self.API_KEY_PREFIX}{backend_id}", key)

    def get_default_model(self) -> str:
        return self.get("default_model", DEFAULT_MODEL)


@dataclass
class Conversation:
    title: str = NEW_CHAT_TITLE
    model: str = DEFAULT_MODEL
    system_prompt: str | None = None
    messages: list[ConversationMessage] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


class InMemoryConversationStore:
    TITLE_LENGTH = 60

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}

    def create(self, title: str | None = None, model: str = DEFAULT_MODEL) -> Conversation:
        conv = Conversation(title=title or NEW_CHAT_TITLE, model=model)
        self._conversations[conv.id] = conv
        return conv

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def get_all(self) -> list[Conversation]:
        return sorted(self._conversations.values(), key=lambda c: c.updated_at, reverse=True)

    def add_message(
        self, conversation_id: str, role: Literal["user", "assistant"], content: str,
        model: str | None = None,
    ) -> ConversationMessage:
        conv = self._conversations.get(conversation_id)
        if conv is None:
            raise KeyError(f"Conversation {conversation_id} not found")
        msg = ConversationMessage(role=role, content=content, model=model)
        conv.messages.append(msg)
        conv.updated_at = msg.timestamp
        if conv.title == NEW_CHAT_TITLE and role == "user" and len(conv.messages) == 1:
            conv.title = content[: self.TITLE_LENGTH] + ("..." if len(content) > self.TITLE_LENGTH else "")
        return msg

    def delete(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)

    def search(self, query: str) -> list[Conversation]:
        q = query.lower()
        return [
            c for c in self.get_all()
            if q in c.title.lower() or any(q in m.content.lower() for m in c.messages)
        ]
