"""Intent routing."""

from .intent_router import (
    DEFAULT_MODULE, FALLBACK_CONFIDENCE, IntentRouter, rank_modules, score_triggers,
)

__all__ = ["DEFAULT_MODULE", "FALLBACK_CONFIDENCE", "IntentRouter", "rank_modules", "score_triggers"]
