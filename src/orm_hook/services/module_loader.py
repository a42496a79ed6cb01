"""
File based model loader.

Every ``*.py`` file in the models directory is one model. The identity is
the lower-cased file name, the display name comes from a module level
``global_id`` or else the capitalized file name:

    # models/owner.py
    import mongoengine

    schema = {
        'name': mongoengine.StringField(required=True),
        'email': str,
    }

Optional ``construct_schema(schema, app)`` replaces the default compilation.
"""
from __future__ import annotations

import importlib.util
import logging
from pathlib import Path

from orm_hook.data.definitions import ModelDefinition
from orm_hook.errors import ModelLoadError

log = logging.getLogger(__name__)


class ModuleLoader:
    def __init__(self, models_path: str | Path):
        self.models_path = Path(models_path)

    def load_models(self) -> dict[str, ModelDefinition]:
        if not self.models_path.is_dir():
            raise ModelLoadError(f'Models directory does not exist: {self.models_path}')

        definitions: dict[str, ModelDefinition] = {}
        for path in sorted(self.models_path.glob('*.py')):
            if path.name.startswith('_'):
                continue
            identity = path.stem.lower()
            if identity in definitions:
                raise ModelLoadError(
                    f'Model files "{definitions[identity].source}" and "{path}" '
                    f'both resolve to identity "{identity}".'
                )
            definitions[identity] = self._load_definition(identity, path)

        log.debug('Found %d model definition(s) in %s', len(definitions), self.models_path)
        return definitions

    def _load_definition(self, identity: str, path: Path) -> ModelDefinition:
        # Prefixed so model files never shadow real modules in sys.modules.
        spec = importlib.util.spec_from_file_location(f'_orm_hook_models.{identity}', path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        return ModelDefinition(
            identity=identity,
            global_id=getattr(module, 'global_id', None) or path.stem[:1].upper() + path.stem[1:],
            schema=getattr(module, 'schema', None),
            construct_schema=getattr(module, 'construct_schema', None),
            source=str(path),
        )
