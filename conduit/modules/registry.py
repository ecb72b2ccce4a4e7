"""ModuleRegistry: owns capability modules and their enable/config state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import ModuleError
from ..infra.logging import get_logger
from ..types import (
    CapabilityModule, ModuleConfig, QuickAction, ToolDefinition, ToolResult, capability,
)

logger = get_logger(__name__)

PartialConfig = Mapping[str, Any] | ModuleConfig


@dataclass
class LifecycleReport:
    """Outcome of a bulk lifecycle call. One broken module never hides the rest."""

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, ModuleError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def __bool__(self) -> bool:
        return self.ok


class ModuleRegistry:
    def __init__(self) -> None:
        self._modules: dict[str, CapabilityModule] = {}
        self._configs: dict[str, ModuleConfig] = {}

    def register(self, module: CapabilityModule, config: PartialConfig | None = None) -> None:
        if module.id in self._modules:
            logger.info("module_replaced", module_id=module.id)
        self._modules[module.id] = module
        self._configs[module.id] = ModuleConfig().merged(config)

    def unregister(self, module_id: str) -> None:
        self._modules.pop(module_id, None)
        self._configs.pop(module_id, None)

    def get(self, module_id: str) -> CapabilityModule | None:
        return self._modules.get(module_id)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def get_all(self) -> list[CapabilityModule]:
        return list(self._modules.values())

    def get_enabled(self) -> list[CapabilityModule]:
        return [m for m in self._modules.values() if self.is_enabled(m.id)]

    def is_enabled(self, module_id: str) -> bool:
        cfg = self._configs.get(module_id)
        return cfg is None or cfg.enabled is not False

    def get_config(self, module_id: str) -> ModuleConfig | None:
        return self._configs.get(module_id)

    def set_config(self, module_id: str, config: PartialConfig) -> ModuleConfig:
        existing = self._configs.get(module_id) or ModuleConfig()
        merged = existing.merged(config)
        self._configs[module_id] = merged
        return merged

    # -- Aggregation over enabled modules --

    def get_all_tools(self) -> list[ToolDefinition]:
        tools: list[ToolDefinition] = []
        for m in self.get_enabled():
            fn = capability(m, "get_tools")
            if fn:
                tools.extend(fn() or [])
        return tools

    def get_all_quick_actions(self) -> list[QuickAction]:
        actions: list[QuickAction] = []
        for m in self.get_enabled():
            fn = capability(m, "get_quick_actions")
            if fn:
                actions.extend(fn() or [])
        return actions

    def find_tool_owner(self, tool_name: str) -> CapabilityModule | None:
        for m in self.get_enabled():
            fn = capability(m, "get_tools")
            if fn and any(t.name == tool_name for t in fn() or []):
                return m
        return None

    async def execute_tool(self, tool_name: str, args: Mapping[str, Any] | None = None) -> ToolResult:
        owner = self.find_tool_owner(tool_name)
        run = capability(owner, "execute_tool") if owner else None
        if owner is None or run is None:
            return ToolResult(success=False, error=f"Unknown tool: {tool_name}")
        try:
            return await run(tool_name, dict(args or {}))
        except Exception as e:
            err = ModuleError(owner.id, f"Tool {tool_name} failed: {e}", e)
            logger.warning("tool_failed", module_id=owner.id, tool=tool_name, error=str(e))
            return ToolResult(success=False, error=str(err))

    # -- Lifecycle --

    async def init_all(self) -> LifecycleReport:
        """Initialize enabled modules one at a time, in registration order."""
        report = LifecycleReport()
        for m in self.get_enabled():
            try:
                await m.init(self._configs[m.id])
            except Exception as e:
                report.failed[m.id] = ModuleError(m.id, f"Module {m.id} failed to init: {e}", e)
                logger.exception("module_init_failed", module_id=m.id)
                continue
            report.succeeded.append(m.id)
        logger.info("modules_initialized", ok=len(report.succeeded), failed=len(report.failed))
        return report

    async def destroy_all(self) -> LifecycleReport:
        report = LifecycleReport()
        for m in list(self._modules.values()):
            try:
                await m.destroy()
            except Exception as e:
                report.failed[m.id] = ModuleError(m.id, f"Module {m.id} failed to destroy: {e}", e)
                logger.exception("module_destroy_failed", module_id=m.id)
                continue
            report.succeeded.append(m.id)
        return report
