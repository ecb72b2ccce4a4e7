"""
Chat module

General AI conversation and the router's default handler. Every message is
answered through the AI registry with a system prompt built from the live
context snapshot.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..infra.logging import get_logger
from ..providers import AIProviderRegistry
from ..stores import DEFAULT_MODEL, ConversationStore, PreferenceStore, VectorStore
from ..types import (
    AIMessage, AIRequest, ContextSnapshot, Intent, ModuleConfig, ModuleResult, QuickAction,
    ToolDefinition, ToolResult,
)

logger = get_logger(__name__)

BASE_PROMPT = "You are a helpful AI assistant. Be concise and direct."
CLIPBOARD_LIMIT = 500
MEMORY_HITS = 3


class SendMessageArgs(BaseModel):
    message: str = Field(..., description="Message to send to the AI")


class GetHistoryArgs(BaseModel):
    conversation_id: str = Field(..., description="Conversation to load")


class SearchArgs(BaseModel):
    query: str = Field(..., description="Text to search for")


class ChatModule:
    id = "chat"
    name = "Chat"
    description = "General AI conversation, the default handler"
    version = "1.0.0"
    triggers = ["chat", "talk", "ask", "help", "explain", "tell me", "what is", "how to"]

    def __init__(
        self,
        ai: AIProviderRegistry,
        preferences: PreferenceStore,
        conversations: ConversationStore | None = None,
        vectors: VectorStore | None = None,
        default_model: str = DEFAULT_MODEL,
    ) -> None:
        self._ai = ai
        self._prefs = preferences
        self._default_model = default_model
        self._conversations = conversations
        self._vectors = vectors
        self.config = ModuleConfig()

    async def init(self, config: ModuleConfig) -> None:
        self.config = config

    async def destroy(self) -> None:
        pass

    def can_handle(self, intent: Intent) -> bool:
        return True

    @property
    def model(self) -> str:
        return self.config.settings.get("model") or self._prefs.get("default_model", self._default_model)

    async def handle(self, intent: Intent, snapshot: ContextSnapshot) -> ModuleResult:
        try:
            response = await self._ai.chat(
                AIRequest(
                    model=self.model,
                    system=self.build_system_prompt(snapshot, intent.raw),
                    messages=[AIMessage(role="user", content=intent.raw)],
                )
            )
        except Exception as e:
            logger.warning("chat_failed", model=self.model, error=str(e))
            return ModuleResult(success=False, error=str(e))
        return ModuleResult(success=True, data=response.content, message=response.content, ui="chat")

    def build_system_prompt(self, snapshot: ContextSnapshot, query: str | None = None) -> str:
        prompt = BASE_PROMPT
        if snapshot.time:
            prompt += f"\n\nCurrent time: {snapshot.time}"
        if snapshot.clipboard:
            prompt += f'\n\nUser\'s clipboard: "{snapshot.clipboard[:CLIPBOARD_LIMIT]}"'
        memories = self._recall(query) if query else []
        if memories:
            prompt += "\n\nRelevant memories:\n" + "\n".join(f"- {m}" for m in memories)
        return prompt

    def _recall(self, query: str) -> list[str]:
        if self._vectors is None:
            return []
        try:
            hits = self._vectors.search(query, limit=MEMORY_HITS)
        except Exception as e:
            logger.warning("memory_search_failed", error=str(e))
            return []
        return [str(h.get("content", h)) if isinstance(h, dict) else str(h) for h in hits]

    def get_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="chat.send_message",
                description="Send a message to the AI and get response",
                input_schema=SendMessageArgs.model_json_schema(),
            ),
            ToolDefinition(
                name="chat.get_history",
                description="Retrieve conversation history",
                input_schema=GetHistoryArgs.model_json_schema(),
            ),
            ToolDefinition(
                name="chat.search",
                description="Full-text search across all conversations",
                input_schema=SearchArgs.model_json_schema(),
            ),
        ]

    async def execute_tool(self, name: str, args: dict[str, Any]) -> ToolResult:
        try:
            if name == "chat.send_message":
                return await self._send_message(SendMessageArgs.model_validate(args))
            if name == "chat.get_history":
                return self._get_history(GetHistoryArgs.model_validate(args))
            if name == "chat.search":
                return self._search(SearchArgs.model_validate(args))
        except ValidationError as e:
            return ToolResult(success=False, error=f"Invalid arguments for {name}: {e}")
        return ToolResult(success=False, error=f"Unknown tool: {name}")

    async def _send_message(self, args: SendMessageArgs) -> ToolResult:
        try:
            response = await self._ai.chat(
                AIRequest(model=self.model, messages=[AIMessage(role="user", content=args.message)])
            )
        except Exception as e:
            return ToolResult(success=False, error=str(e))
        return ToolResult(success=True, data=response.content)

    def _get_history(self, args: GetHistoryArgs) -> ToolResult:
        conv = self._conversations.get(args.conversation_id) if self._conversations else None
        if conv is None:
            return ToolResult(success=False, error="Not found")
        return ToolResult(success=True, data=conv)

    def _search(self, args: SearchArgs) -> ToolResult:
        search = getattr(self._conversations, "search", None)
        if search is None:
            return ToolResult(success=False, error="Conversation search is not available")
        return ToolResult(success=True, data=search(args.query))

    def get_quick_actions(self) -> list[QuickAction]:
        create = getattr(self._conversations, "create", None)
        if create is None:
            return []

        def new_chat() -> None:
            create()

        return [
            QuickAction(
                id="chat.new",
                label="New Chat",
                module_id=self.id,
                action=new_chat,
                icon="message-square-plus",
                description="Start a new conversation",
            )
        ]
