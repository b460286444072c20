from __future__ import annotations


class SetupError(Exception):
    """Bootstrap could not complete. Never retried."""


class MongoUnreachableError(SetupError, ConnectionError):
    """The MongoDB server could not be reached."""


class SchemaConflictError(SetupError):
    """An existing collection or index does not match the declared layout."""


class InsertError(SetupError):
    """The server rejected the seed documents."""
