"""
MongoEngine ORM hook.

Loads the application's model files and turns them into MongoEngine
documents, in place of the framework's default ORM:

    app = App(config=load_config('config.yml'))
    hook = Hook(app)
    hook.configure()
    models = await hook.load()
    models['owner'].objects(email=email).first()

Steps, strictly in order: validate configuration, connect, load model files,
compile schemas, register models, signal completion once.
"""
from __future__ import annotations

import asyncio
from typing import Any

from orm_hook.data.mongo_setup import MongoEngineMapper
from orm_hook.infrastructure.completion import Callback, Completion
from orm_hook.infrastructure.config import (
    DEFAULT_ALIAS,
    DEFAULT_MODELS_PATH,
    HookConfig,
    apply_defaults,
    to_hook_config,
)
from orm_hook.infrastructure.state import App
from orm_hook.services.module_loader import ModuleLoader
from orm_hook.services.schema_service import (
    ModelRegistry,
    compile_schemas,
    expose_globals,
    register_models,
)


class Hook:
    def __init__(self, app: App, mapper: Any = None, loader: Any = None):
        self.app = app
        self.settings: HookConfig | None = None
        self._mapper = mapper
        self._loader = loader

    @property
    def defaults(self) -> dict[str, Any]:
        """Implicit settings merged underneath the application's configuration."""
        custom = self.app.config.get('custom')
        mongo = custom.get('mongo') if isinstance(custom, dict) else None
        uri = mongo.get('connection_uri') if isinstance(mongo, dict) else None

        return {
            'mongoengine': {
                'uri': uri,
                'connection_opts': {},
                'alias': DEFAULT_ALIAS,
            },
            'globals': {'models': False},
            'paths': {'models': DEFAULT_MODELS_PATH},
        }

    def configure(self) -> HookConfig:
        self.app.config = apply_defaults(self.app.config, self.defaults)
        self.settings = to_hook_config(self.app.config)
        return self.settings

    async def initialize(self, done: Callback | None = None) -> Completion:
        """Run every step and report the outcome to ``done`` exactly once.

        Errors are never raised from here; they are passed to ``done``, or
        without a callback set on the returned Completion's future.
        """
        loop = None if done is not None else asyncio.get_running_loop()
        completion = Completion(done, loop=loop)
        try:
            settings = self.settings or self.configure()
            app = self.app

            # Set before connecting so construct_schema functions can reach it.
            app.mapper = self._mapper or MongoEngineMapper(alias=settings.alias)
            await app.mapper.connect(settings.uri, settings.connection_opts)

            app.log.debug("Loading the app's models from `%s`...", settings.models_path)
            loader = self._loader or ModuleLoader(settings.models_path)
            definitions = await asyncio.to_thread(loader.load_models)

            schemas = compile_schemas(definitions, app)
            app.models = register_models(schemas, definitions, app)

            if settings.expose_globals:
                expose_globals(app.models, app.namespace)
        except Exception as exc:
            completion(exc)
            return completion

        app.log.info('Loaded %d model(s): %s', len(app.models), ', '.join(sorted(app.models)))
        completion()
        return completion

    async def load(self) -> ModelRegistry:
        """Like initialize(), but raises the error instead of calling back."""
        completion = await self.initialize()
        await completion.future
        return self.app.models
