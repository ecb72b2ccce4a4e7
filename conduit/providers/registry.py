"""AIProviderRegistry: resolves a model name to a backend and delegates."""

from __future__ import annotations

from ..errors import RoutingError
from ..infra.logging import get_logger
from ..types import AIProvider, AIRequest, AIResponse
from .streaming import DeltaStream

logger = get_logger(__name__)


class AIProviderRegistry:
    """Backends keyed by id, searched in registration order.

    When two backends declare the same model name the first registered wins.
    """

    def __init__(self) -> None:
        self._providers: dict[str, AIProvider] = {}

    def register(self, provider: AIProvider) -> None:
        self._providers[provider.id] = provider

    def unregister(self, provider_id: str) -> None:
        self._providers.pop(provider_id, None)

    def get(self, provider_id: str) -> AIProvider | None:
        return self._providers.get(provider_id)

    def get_all(self) -> list[AIProvider]:
        return list(self._providers.values())

    def get_all_models(self) -> list[tuple[str, str]]:
        return [(p.id, m) for p in self._providers.values() for m in p.models]

    def find_provider(self, model: str) -> AIProvider | None:
        for p in self._providers.values():
            if model in p.models:
                return p
        return None

    def _resolve(self, model: str) -> AIProvider:
        provider = self.find_provider(model)
        if provider is None:
            raise RoutingError(f"No provider for model: {model}")
        return provider

    async def chat(self, request: AIRequest) -> AIResponse:
        provider = self._resolve(request.model)
        logger.debug("chat_dispatch", backend=provider.id, model=request.model)
        return await provider.chat(request)

    def stream(self, request: AIRequest) -> DeltaStream:
        return self._resolve(request.model).stream(request)

    async def aclose(self) -> None:
        for p in self._providers.values():
            close = getattr(p, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception:
                logger.exception("backend_close_failed", backend=p.id)
