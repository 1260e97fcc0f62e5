# produce/errors.py


class StoreError(Exception):
    """Raised when the persistent store cannot complete an operation."""


class CacheError(Exception):
    """Raised by key-value backends when the cache server is unreachable or errors."""


class ImportValidationError(ValueError):
    """Raised when an import payload or file cannot be accepted."""


class ConfigurationError(Exception):
    pass
