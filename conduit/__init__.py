"""
Conduit - orchestration runtime for a modular assistant shell
=============================================================

Capability modules plug into a shared dispatch and context layer:

- **ModuleRegistry** (`conduit.modules`): module instances, config, tools, lifecycle.
- **IntentRouter** (`conduit.router`): keyword trigger scoring, dispatch to the primary module.
- **ContextEngine** (`conduit.context`): periodic signal providers and read-only snapshots.
- **AIProviderRegistry** (`conduit.providers`): one chat/stream surface over Claude, OpenAI and Ollama.
- **EventBus** (`conduit.events`): in-process pub/sub with a wildcard channel.

## Quick Start

```python
from conduit import Shell, ShellSettings

shell = Shell(ShellSettings.from_env())
shell.register_default_backends()
shell.register_builtin_modules()
await shell.start()
intent, result = await shell.handle_message("review this function")
await shell.shutdown()
```
"""

from .config import BackendSettings, ShellSettings
from .context import ContextEngine
from .errors import (
    ConduitError, ConfigurationError, ModuleError, ProtocolError, RequestCancelledError,
    RoutingError, TransportError,
)
from .events import EventBus
from .infra import configure_logging, get_logger
from .modules import LifecycleReport, ModuleRegistry
from .providers import AIProviderRegistry, CancelToken, DeltaStream
from .router import IntentRouter, score_triggers
from .runtime import Shell

__version__ = "0.1.0"

__all__ = [
    "AIProviderRegistry",
    "BackendSettings",
    "CancelToken",
    "ConduitError",
    "ConfigurationError",
    "ContextEngine",
    "DeltaStream",
    "EventBus",
    "IntentRouter",
    "LifecycleReport",
    "ModuleError",
    "ModuleRegistry",
    "ProtocolError",
    "RequestCancelledError",
    "RoutingError",
    "Shell",
    "ShellSettings",
    "TransportError",
    "configure_logging",
    "get_logger",
    "score_triggers",
]
