"""Config DB exception hierarchy."""


class ConfigDBError(Exception):
    """Base exception for all config DB errors."""


class ConnectionFailure(ConfigDBError):
    """Raised when the store cannot be reached."""


class NotConnectedError(ConfigDBError, RuntimeError):
    """Raised when an operation runs on a handle that is not connected."""


class UnknownDatabaseError(ConfigDBError, KeyError):
    """Raised when a database name is missing from the database config."""


class MalformedKeyError(ConfigDBError, ValueError):
    """Raised when a flat key does not contain the table separator."""


class CommandError(ConfigDBError):
    """Raised when the store rejects a command."""


class ConfigFileError(ConfigDBError):
    """Raised when the database config file is invalid or cannot be read."""
