"""Keyword-scoring intent router."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from ..errors import ModuleError
from ..infra.logging import get_logger
from ..modules import ModuleRegistry
from ..types import CapabilityModule, ContextSnapshot, Intent, ModuleResult

logger = get_logger(__name__)

DEFAULT_MODULE = "chat"
FALLBACK_CONFIDENCE = 0.5
FULL_CONFIDENCE_SCORE = 3


def score_triggers(message: str, triggers: Iterable[str]) -> int:
    """Number of triggers found in ``message`` (case-insensitive substring)."""
    lower = message.lower()
    return sum(1 for t in triggers if t and t.lower() in lower)


def rank_modules(message: str, modules: Sequence[CapabilityModule]) -> list[tuple[str, int]]:
    scored = [(m.id, score_triggers(message, m.triggers)) for m in modules]
    # sorted() is stable: equal scores keep registration order.
    return sorted((s for s in scored if s[1] > 0), key=lambda s: s[1], reverse=True)


class IntentRouter:
    def __init__(self, registry: ModuleRegistry, default_module: str = DEFAULT_MODULE) -> None:
        self._registry = registry
        self.default_module = default_module

    def route(self, message: str) -> Intent:
        ranked = rank_modules(message, self._registry.get_enabled())
        if not ranked:
            return Intent(
                raw=message,
                modules=(self.default_module,),
                type=self.default_module,
                confidence=FALLBACK_CONFIDENCE,
            )
        top_id, top_score = ranked[0]
        return Intent(
            raw=message,
            modules=tuple(mid for mid, _ in ranked),
            type=top_id,
            confidence=min(top_score / FULL_CONFIDENCE_SCORE, 1.0),
        )

    async def execute(self, intent: Intent, snapshot: ContextSnapshot) -> ModuleResult:
        module = self._registry.get(intent.primary)
        if module is None:
            module = self._registry.get(self.default_module)
        if module is None:
            return ModuleResult(success=False, error="No module available")
        try:
            return await module.handle(intent, snapshot)
        except Exception as e:
            err = ModuleError(module.id, f"Module {module.id} failed: {e}", e)
            logger.exception("module_handle_failed", module_id=module.id, intent_id=intent.id)
            return ModuleResult(success=False, error=str(err))

    def build_routing_prompt(self, modules: Sequence[CapabilityModule] | None = None) -> str:
        """Prompt for LLM-assisted routing. Never used by :meth:`route`."""
        if modules is None:
            modules = self._registry.get_enabled()
        module_list = "\n".join(
            f"- {m.id}: {getattr(m, 'description', '')} (triggers: {', '.join(m.triggers)})"
            for m in modules
        )
        return (
            "You are an intent router. Given a user message, determine which module(s) "
            "should handle it.\n\n"
            f"Available modules:\n{module_list}\n\n"
            'Respond with JSON: {"modules": ["module_id"], "type": "primary_module_id"}\n'
            f'If unsure, use "{self.default_module}".'
        )
