from pathlib import Path

import pytest

from orm_hook.data.definitions import ModelDefinition
from orm_hook.data.mongo_setup import MongoEngineMapper
from orm_hook.infrastructure.state import App

FIXTURE_MODELS = Path(__file__).parent / 'fixtures' / 'models'


class RecordingMapper(MongoEngineMapper):
    """Real schema/model building, no network: connect() only records the call."""

    def __init__(self, alias='core', fail_with=None):
        super().__init__(alias)
        self.connect_calls = []
        self.fail_with = fail_with

    async def connect(self, uri, options=None):
        self.connect_calls.append((uri, options))
        if self.fail_with is not None:
            raise self.fail_with


class StaticLoader:
    def __init__(self, definitions=None, error=None):
        self.definitions = definitions or {}
        self.error = error

    def load_models(self):
        if self.error is not None:
            raise self.error
        return self.definitions


def definitions(*global_ids, **extra):
    return {
        gid.lower(): ModelDefinition(identity=gid.lower(), global_id=gid, **extra)
        for gid in global_ids
    }


@pytest.fixture
def mapper() -> RecordingMapper:
    return RecordingMapper()


@pytest.fixture
def config() -> dict:
    return {
        'mongoengine': {'uri': 'mongodb://localhost:27017/orm_hook_test'},
        'globals': {'models': True},
        'paths': {'models': str(FIXTURE_MODELS)},
    }


@pytest.fixture
def app(config, mapper) -> App:
    app = App(config=config)
    app.mapper = mapper
    return app
