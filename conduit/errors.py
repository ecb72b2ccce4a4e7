"""Structured error hierarchy for the orchestration runtime."""

from __future__ import annotations


class ConduitError(Exception):
    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause

    @classmethod
    def wrap(cls, err: Exception) -> ConduitError:
        if isinstance(err, ConduitError):
            return err
        return ConduitError("UNKNOWN", str(err), err)


class ConfigurationError(ConduitError):
    """A backend is missing something it needs before it can go to the network."""

    def __init__(self, backend: str, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)
        self.backend = backend


class TransportError(ConduitError):
    BODY_LIMIT = 500

    def __init__(
        self,
        backend: str,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__("TRANSPORT_ERROR", message, cause)
        self.backend = backend
        self.status_code = status_code
        self.body = body[: self.BODY_LIMIT] if body is not None else None

    @classmethod
    def from_status(cls, backend: str, status_code: int, body: str) -> TransportError:
        clipped = body[: cls.BODY_LIMIT]
        return cls(backend, f"{backend} API error ({status_code}): {clipped}", status_code, clipped)


class RequestCancelledError(TransportError):
    def __init__(self, backend: str) -> None:
        super().__init__(backend, f"Request to {backend} was cancelled")
        self.code = "REQUEST_CANCELLED"


class ProtocolError(ConduitError):
    def __init__(self, frame: str, cause: Exception | None = None) -> None:
        super().__init__("PROTOCOL_ERROR", f"Malformed stream frame: {frame[:120]!r}", cause)
        self.frame = frame


class RoutingError(ConduitError):
    def __init__(self, message: str) -> None:
        super().__init__("ROUTING_ERROR", message)


class ModuleError(ConduitError):
    def __init__(self, module_id: str, message: str, cause: Exception | None = None) -> None:
        super().__init__("MODULE_ERROR", message, cause)
        self.module_id = module_id
