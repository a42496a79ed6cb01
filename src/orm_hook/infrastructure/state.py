"""Application context threaded through the hook.

Exposes:
- App: holds the raw configuration, the document mapper, the loaded model
  registry and the namespace that models are optionally published into.

Built once by the application's startup routine and passed explicitly to
anything that needs model access, including construct_schema functions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, MutableMapping

from orm_hook.services.schema_service import ModelRegistry


@dataclass
class App:
    config: dict[str, Any] = field(default_factory=dict)
    # Where globals.models publishes handles; a module's __dict__ works too.
    namespace: MutableMapping[str, Any] = field(default_factory=dict)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger('orm_hook'))

    # Populated by Hook.initialize().
    mapper: Any = None
    models: ModelRegistry = field(default_factory=ModelRegistry)
