"""Exception hierarchy raised inside the mapper.

Apart from :class:`MappingError` (an invalid model declaration, raised eagerly
when a mapper is built) these never reach callers of a :class:`Mapper`
operation: they are caught at the operation boundary and carried inside a
failed :class:`litemap.result.Result`.
"""

from __future__ import annotations

__all__ = [
    "MapperError",
    "MappingError",
    "ConnectionFailure",
    "StatementError",
    "SchemaMismatchError",
    "ResolutionError",
    "CyclicReferenceError",
    "RegistryFrozenError",
    "ReadBackError",
]


class MapperError(Exception):
    """Base class for every error raised by litemap."""


class MappingError(MapperError):
    """A model declaration cannot be turned into table metadata."""


class ConnectionFailure(MapperError):
    """The database could not be reached or refused the credentials."""


class StatementError(MapperError):
    """The database rejected a generated statement."""

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class SchemaMismatchError(MapperError):
    """A result row does not have the shape the model declares."""


class ResolutionError(MapperError):
    """A foreign-key reference cannot be turned into a stored key."""


class CyclicReferenceError(MapperError):
    """Foreign-key hydration revisited an entity or exceeded the depth bound."""

    def __init__(self, message: str, trail: tuple = ()) -> None:
        super().__init__(message)
        self.trail = trail


class RegistryFrozenError(MapperError):
    """A frozen :class:`~litemap.core.registry.MapperRegistry` was mutated."""


class ReadBackError(MapperError):
    """A write committed but reading the stored row back failed.

    ``id`` is the key of the committed row; ``__cause__`` holds the read error.
    """

    def __init__(self, message: str, id: int) -> None:
        super().__init__(message)
        self.id = id
