"""Module registry package."""

from .registry import LifecycleReport, ModuleRegistry

__all__ = ["LifecycleReport", "ModuleRegistry"]
