import asyncio
import copy
import datetime
import logging
from types import MappingProxyType

import bson
import mongoengine # Import the MongoEngine library used to define models and manage MongoDB connections.
from mongoengine.base import BaseField

from orm_hook.errors import HookConnectionError

log = logging.getLogger(__name__)

# Python types accepted in place of a field instance in a schema dictionary.
SHORTHANDS = {
    str: mongoengine.StringField,
    int: mongoengine.IntField,
    float: mongoengine.FloatField,
    bool: mongoengine.BooleanField,
    datetime.datetime: mongoengine.DateTimeField,
    list: mongoengine.ListField,
    dict: mongoengine.DictField,
    bson.ObjectId: mongoengine.ObjectIdField,
}

"""
Register the application's connection and make sure the server answers.

- Registers the connection under `alias` ('core' unless configured), which
    every generated model names in its `meta = {'db_alias': ...}`.
- mongoengine.connect() is lazy, so a ping is sent to surface bad URIs and
    unreachable servers at startup instead of on the first query.
"""
def global_init(uri, alias='core', **options):
    client = mongoengine.connect(host=uri, alias=alias, **options)
    client.admin.command('ping')
    return client


def to_field(name, spec):
    """Turn one schema dictionary entry into a MongoEngine field instance.

    Accepts a field instance, a field class, a Python type from SHORTHANDS,
    or a dictionary with a "type" key plus keyword arguments for the field.
    """
    if isinstance(spec, BaseField):
        return spec
    if isinstance(spec, type) and issubclass(spec, BaseField):
        return spec()
    if isinstance(spec, dict):
        options = dict(spec)
        kind = options.pop('type', None)
        if kind is None:
            raise TypeError(f'Field "{name}" is missing a "type".')
        return _field_class(name, kind)(**options)
    return _field_class(name, spec)()


def _field_class(name, kind):
    if isinstance(kind, type) and issubclass(kind, BaseField):
        return kind
    try:
        return SHORTHANDS[kind]
    except (KeyError, TypeError):
        raise TypeError(f'Field "{name}" has an unsupported type: {kind!r}.') from None


class Schema:
    """Compiled, read-only set of fields for one model."""

    def __init__(self, fields=None, meta=None):
        self.fields = MappingProxyType({
            name: to_field(name, spec) for name, spec in (fields or {}).items()
        })
        self.meta = MappingProxyType(dict(meta or {}))

    def shape(self):
        return {name: type(f).__name__ for name, f in self.fields.items()}

    def __eq__(self, other):
        if not isinstance(other, Schema):
            return NotImplemented
        return self.shape() == other.shape() and dict(self.meta) == dict(other.meta)

    __hash__ = None

    def __repr__(self):
        return f'Schema({self.shape()!r})'


class MongoEngineMapper:
    """The document mapper the hook drives: connect, build schemas, build models."""

    Schema = Schema

    def __init__(self, alias='core'):
        self.alias = alias

    async def connect(self, uri, options=None):
        try:
            # pymongo is blocking; keep the event loop free while it connects.
            await asyncio.to_thread(global_init, uri, self.alias, **(options or {}))
        except Exception as exc:
            log.error('Failed to connect to MongoDB database')
            raise HookConnectionError(str(exc)) from exc
        log.info('Connected to MongoDB database')

    def schema(self, fields, meta=None):
        return Schema(fields, meta)

    def model(self, name, schema):
        # Field instances are descriptors bound to one class; copy so a Schema can be reused.
        attrs = {fname: copy.deepcopy(f) for fname, f in schema.fields.items()}
        attrs['meta'] = {'db_alias': self.alias, **schema.meta}
        return type(name, (mongoengine.Document,), attrs)
