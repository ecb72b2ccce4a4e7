"""Configuration models."""

from .settings import BackendSettings, ShellSettings

__all__ = ["BackendSettings", "ShellSettings"]
