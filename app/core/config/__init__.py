from __future__ import annotations

from .engine import (
    EngineConfig,
    get_engine_config,
    get_engine_value,
    load_engine_config,
    resolve_engine_config,
)
from .settings import Settings, settings

__all__ = [
    "Settings",
    "settings",
    "EngineConfig",
    "get_engine_config",
    "get_engine_value",
    "load_engine_config",
    "resolve_engine_config",
]
