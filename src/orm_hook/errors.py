class HookError(Exception):
    """Base class for everything the hook raises on purpose."""


class ConfigError(HookError, ValueError):
    """Configuration is missing or malformed."""


class HookConnectionError(HookError, ConnectionError):
    """The database connection could not be established."""


class ModelLoadError(HookError):
    """Model definition files could not be enumerated."""


class SchemaError(HookError, ValueError):
    """A model definition could not be compiled into a schema.

    ``details`` holds the original traceback text when the failure came
    from a user supplied ``construct_schema`` function.
    """

    def __init__(self, message: str, identity: str | None = None, details: str | None = None):
        super().__init__(message)
        self.identity = identity
        self.details = details
