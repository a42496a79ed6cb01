"""
Configuration handling for the hook.

The raw configuration is a nested dictionary in the shape the host
application keeps its settings in:

    mongoengine:
      uri: mongodb://localhost:27017/app
      connection_opts: {serverSelectionTimeoutMS: 2000}
      alias: core
    globals:
      models: true
    paths:
      models: api/models

Exposes:
- load_config(): read a YAML file, expanding ${VAR} references.
- apply_defaults(): merge implicit defaults underneath user settings.
- validate_config(): fail fast on malformed values, before any connection.
- HookConfig: the validated, typed view of the settings above.
"""
from __future__ import annotations

import copy
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from orm_hook.errors import ConfigError

DEFAULT_ALIAS = 'core'
DEFAULT_MODELS_PATH = 'models'

_ENV_REF = re.compile(r'\$\{([^}]+)\}')


@dataclass
class HookConfig:
    uri: str
    connection_opts: dict[str, Any] = field(default_factory=dict)
    alias: str = DEFAULT_ALIAS
    expose_globals: bool = False
    models_path: Path = Path(DEFAULT_MODELS_PATH)


def _resolve_env(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        def substitute(match: re.Match) -> str:
            key = match.group(1)
            if key not in env:
                raise ConfigError(f'Environment variable {key} is required but not set')
            return env[key]

        return _ENV_REF.sub(substitute, value)
    if isinstance(value, list):
        return [_resolve_env(v, env) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v, env) for k, v in value.items()}
    return value


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> dict[str, Any]:
    env = env if env is not None else os.environ
    raw = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f'Expected a mapping at the top of {path}')
    return _resolve_env(raw, env)


def apply_defaults(config: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``config`` with ``defaults`` filled in underneath it.

    Nested dictionaries are merged key by key; any value the user set,
    including a malformed one, wins over the default so validation sees it.
    """
    merged = copy.deepcopy(dict(defaults))
    for key, value in config.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = apply_defaults(value, merged[key])
        else:
            merged[key] = value
    return merged


def validate_config(config: Mapping[str, Any]) -> None:
    globals_cfg = config.get('globals')
    if globals_cfg is not None:
        if not isinstance(globals_cfg, Mapping):
            raise ConfigError(
                'If provided, "globals" must be a dictionary, '
                f'but got {type(globals_cfg).__name__}.'
            )
        flag = globals_cfg.get('models')
        # bool only; 1 and "yes" are rejected too.
        if flag is not None and not isinstance(flag, bool):
            raise ConfigError(
                'If provided, "globals.models" must be either true or false, '
                f'but got {flag!r}.'
            )

    mongo_cfg = config.get('mongoengine')
    if not isinstance(mongo_cfg, Mapping):
        raise ConfigError(
            'Expected a "mongoengine" dictionary holding the Mongo connection settings.'
        )

    if not isinstance(mongo_cfg.get('uri'), str):
        raise ConfigError(
            'Expected Mongo connection URI (a string) to be provided as "mongoengine.uri", '
            'but the provided Mongo URI is invalid.\n'
            'See https://www.mongodb.com/docs/manual/reference/connection-string/ for help.'
        )

    opts = mongo_cfg.get('connection_opts')
    if opts is not None and not isinstance(opts, Mapping):
        raise ConfigError(
            'If provided, "mongoengine.connection_opts" must be a dictionary of '
            'additional options to pass to mongoengine.connect().'
        )

    alias = mongo_cfg.get('alias')
    if alias is not None and (not isinstance(alias, str) or not alias):
        raise ConfigError('If provided, "mongoengine.alias" must be a non-empty string.')


def to_hook_config(config: Mapping[str, Any]) -> HookConfig:
    validate_config(config)
    mongo_cfg = config['mongoengine']
    globals_cfg = config.get('globals') or {}
    paths_cfg = config.get('paths') or {}

    return HookConfig(
        uri=mongo_cfg['uri'],
        connection_opts=dict(mongo_cfg.get('connection_opts') or {}),
        alias=mongo_cfg.get('alias') or DEFAULT_ALIAS,
        expose_globals=globals_cfg.get('models') is True,
        models_path=Path(paths_cfg.get('models') or DEFAULT_MODELS_PATH),
    )
