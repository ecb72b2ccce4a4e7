"""Runtime: wires the bus, registries, router and context engine together."""

from .core import HANDLED_EVENT, ROUTED_EVENT, Shell

__all__ = ["HANDLED_EVENT", "ROUTED_EVENT", "Shell"]
