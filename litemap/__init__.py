"""litemap: a minimal object-relational mapper.

Declare models by subclassing :class:`Entity`, build one :class:`Mapper` per
model, register the mappers and run CRUD through a :class:`ConnectionProvider`::

    provider = ConnectionProvider.from_settings()
    tasks = Mapper(Task)
    registry.register(tasks)
    created = tasks.insert(provider, Task(title="write docs"))
"""

from litemap.core import (  # noqa: F401
    Column,
    ColumnDescriptor,
    ConnectionProvider,
    Entity,
    EntityMetadata,
    ForeignKey,
    Mapper,
    MapperRegistry,
    PrimaryKey,
    Role,
)
from litemap.core.registry import registry  # noqa: F401
from litemap.result import Result, ResultStatus  # noqa: F401

__all__ = [
    "Column",
    "ColumnDescriptor",
    "ConnectionProvider",
    "Entity",
    "EntityMetadata",
    "ForeignKey",
    "Mapper",
    "MapperRegistry",
    "PrimaryKey",
    "Result",
    "ResultStatus",
    "Role",
    "registry",
]
