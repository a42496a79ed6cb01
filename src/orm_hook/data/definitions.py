"""
Model definitions as read from the application's model files.

A definition is resolved once into one of two variants, so code that
compiles schemas never has to inspect its shape again:

    PlainSchema    the schema dictionary is compiled as is.
    CustomBuilder  a construct_schema(schema, app) function builds the Schema.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from orm_hook.errors import SchemaError


@dataclass(frozen=True)
class ModelDefinition:
    identity: str  # lookup key, lower case
    global_id: str  # display name, also the Document class name
    schema: Any = None
    construct_schema: Any = None
    source: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class PlainSchema:
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class CustomBuilder:
    fields: Mapping[str, Any]
    builder: Callable[..., Any]


Resolved = Union[PlainSchema, CustomBuilder]


def resolve(definition: ModelDefinition) -> Resolved:
    schema = definition.schema
    if schema is None:
        schema = {}
    if not isinstance(schema, Mapping):
        raise SchemaError(
            f'Invalid "schema" provided in model "{definition.identity}".\n'
            'If provided, "schema" must be a dictionary.',
            identity=definition.identity,
        )

    builder = definition.construct_schema
    if builder is None:
        return PlainSchema(fields=dict(schema))
    if not callable(builder):
        raise SchemaError(
            f'Invalid "construct_schema" provided in model "{definition.identity}".\n'
            'If provided, "construct_schema" must be a function.',
            identity=definition.identity,
        )
    return CustomBuilder(fields=dict(schema), builder=builder)
