from __future__ import annotations

import traceback
from collections.abc import Mapping
from typing import Any, Iterator, MutableMapping

from orm_hook.data.definitions import CustomBuilder, ModelDefinition, PlainSchema, resolve
from orm_hook.errors import SchemaError

"""
Service-layer helpers that turn model definitions into registered models.

Notes:
- compile_schemas() finishes every schema before register_models() runs;
  the first failure aborts the whole pass.
- Errors always name the model identity they came from.
"""


class ModelRegistry(Mapping):
    """Read-only mapping of identity to model class."""

    def __init__(self, models: Mapping[str, Any] | None = None):
        self._models = dict(models or {})

    def __getitem__(self, identity: str) -> Any:
        return self._models[identity]

    def __iter__(self) -> Iterator[str]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        return f'ModelRegistry({sorted(self._models)!r})'


"""
Compile every definition into a Schema.

Parameters:
    definitions: identity -> ModelDefinition, as returned by the model loader.
    app: the application context; its mapper builds plain schemas and it is
         handed to construct_schema functions as their second argument.

Returns:
    identity -> Schema, in the same order as definitions.
"""
def compile_schemas(definitions: Mapping[str, ModelDefinition], app) -> dict[str, Any]:
    schemas = {}
    for identity, definition in definitions.items():
        resolved = resolve(definition)

        if isinstance(resolved, PlainSchema):
            schemas[identity] = _plain_schema(identity, resolved.fields, app)

        elif isinstance(resolved, CustomBuilder):
            try:
                built = resolved.builder(resolved.fields, app)
            except Exception as exc:
                prefix = (
                    'Encountered an error when running "construct_schema" provided for model\n'
                    f'"{identity}". Details:\n'
                )
                raise SchemaError(
                    prefix + str(exc),
                    identity=identity,
                    details=prefix + ''.join(traceback.format_exception(exc)),
                ) from exc

            # A plain dictionary is compiled the same way as a "schema" entry.
            if isinstance(built, Mapping):
                built = _plain_schema(identity, built, app)
            elif not isinstance(built, app.mapper.Schema):
                raise SchemaError(
                    f'Invalid value returned by "construct_schema" in model "{identity}".\n'
                    f'Expected a Schema or a dictionary, but got {type(built).__name__}.',
                    identity=identity,
                )
            schemas[identity] = built

    return schemas


def _plain_schema(identity: str, fields: Mapping[str, Any], app) -> Any:
    try:
        return app.mapper.schema(fields)
    except Exception as exc:
        raise SchemaError(
            f'Invalid "schema" provided in model "{identity}". Details:\n{exc}',
            identity=identity,
        ) from exc


"""
Create a model class per compiled schema and tag it with its names.

Each class gets `global_id` (display name) and `identity` (lookup key)
attributes, so code written against either naming finds it.

Returns:
    A ModelRegistry keyed by identity.
"""
def register_models(schemas: Mapping[str, Any],
                    definitions: Mapping[str, ModelDefinition], app) -> ModelRegistry:
    models = {}
    for identity, schema in schemas.items():
        global_id = definitions[identity].global_id

        model = app.mapper.model(global_id, schema)
        model.global_id = global_id
        model.identity = identity

        models[identity] = model

    return ModelRegistry(models)


"""Bind every model under its global_id in the given namespace."""
def expose_globals(models: Mapping[str, Any], namespace: MutableMapping[str, Any]) -> None:
    for model in models.values():
        namespace[model.global_id] = model
