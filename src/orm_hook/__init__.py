"""Lifecycle hook that loads model files as MongoEngine documents."""

from orm_hook.errors import (
    ConfigError,
    HookConnectionError,
    HookError,
    ModelLoadError,
    SchemaError,
)
from orm_hook.hook import Hook
from orm_hook.infrastructure.state import App

__all__ = [
    "App",
    "ConfigError",
    "Hook",
    "HookConnectionError",
    "HookError",
    "ModelLoadError",
    "SchemaError",
]
