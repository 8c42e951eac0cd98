"""Table metadata derived from an :class:`~litemap.core.model.Entity` subclass.

:class:`EntityMetadata` is built once per mapper and never changes afterwards.
Its column order is the single source of truth for CREATE TABLE, INSERT,
UPDATE and hydration.
"""

from __future__ import annotations

import enum
import types
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union, get_args, get_origin

from litemap.core.model import (
    IDENTITY_COLUMN,
    Column,
    Entity,
    ForeignKey,
    PrimaryKey,
    resolve_entity,
)
from litemap.errors import MappingError

__all__ = [
    "Role",
    "ColumnDescriptor",
    "EntityMetadata",
    "SERIAL_IDENTITY",
    "SCALAR_SQL_TYPES",
    "sql_type",
    "host_type_name",
]

SERIAL_IDENTITY = "SERIAL PRIMARY KEY"

# Host type name -> SQL type. Names not listed pass through lower-cased.
SCALAR_SQL_TYPES: dict[str, str] = {
    "byte": "int",
    "short": "int",
    "long": "bigint",
    "char": "varchar",
    "string": "varchar",
    "double": "float",
}

HOST_TYPE_NAMES: dict[type, str] = {
    bool: "boolean",
    int: "int",
    float: "double",
    str: "string",
    bytes: "bytea",
    Decimal: "numeric",
    datetime: "timestamp",
    date: "date",
}


class Role(str, enum.Enum):
    """Role a field plays in its table."""

    PRIMARY = "primary"
    COLUMN = "column"
    FOREIGN_KEY = "foreign_key"


def sql_type(type_name: str) -> str:
    """Map a host scalar type name to its SQL type (case-insensitive)."""
    lowered = type_name.lower()
    return SCALAR_SQL_TYPES.get(lowered, lowered)


def host_type_name(annotation: Any) -> str:
    """Return the host type name for a field annotation.

    ``Optional[X]`` is unwrapped to ``X``.
    """
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) != 1:
            raise MappingError(f"Cannot map union type {annotation!r} to a column")
        annotation = members[0]
    if annotation in HOST_TYPE_NAMES:
        return HOST_TYPE_NAMES[annotation]
    name = getattr(annotation, "__name__", None)
    if name is None:
        raise MappingError(f"Cannot map {annotation!r} to a column")
    return name


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    field_name: str
    sql_type: str
    role: Role
    referenced_type: Optional[type[Entity]] = None

    @property
    def is_foreign_key(self) -> bool:
        return self.role is Role.FOREIGN_KEY


@dataclass(frozen=True)
class EntityMetadata:
    """Derived, immutable schema description for one model type."""

    model: type[Entity]
    table_name: str
    columns: tuple[ColumnDescriptor, ...]
    constraints: tuple[str, ...] = ()

    @property
    def primary_key(self) -> ColumnDescriptor:
        return self.columns[0]

    @property
    def data_columns(self) -> tuple[ColumnDescriptor, ...]:
        """Every column except the identity, in declaration order."""
        return self.columns[1:]

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    @property
    def column_types(self) -> list[str]:
        return [column.sql_type for column in self.columns]

    @classmethod
    def from_model(cls, model: type[Entity]) -> "EntityMetadata":
        """Derive metadata from ``model``'s fields and their role markers.

        Raises
        MappingError
            If the model has no table name, does not have exactly one primary
            key, repeats a column name or references a non-entity type.
        """
        if not (isinstance(model, type) and issubclass(model, Entity)):
            raise MappingError(f"{model!r} is not an Entity subclass")
        table_name = table_name_of(model)

        primary: list[ColumnDescriptor] = []
        columns: list[ColumnDescriptor] = []
        constraints: list[str] = []

        for field_name, info in model.model_fields.items():
            marker = _role_marker(model, field_name, info.metadata)
            if marker is None:
                continue
            if isinstance(marker, PrimaryKey):
                primary.append(
                    ColumnDescriptor(IDENTITY_COLUMN, field_name, SERIAL_IDENTITY, Role.PRIMARY)
                )
            elif isinstance(marker, Column):
                type_name = marker.type_name or host_type_name(info.annotation)
                columns.append(
                    ColumnDescriptor(
                        marker.name or field_name, field_name, sql_type(type_name), Role.COLUMN
                    )
                )
            else:
                target = resolve_entity(marker.target, declaring=model)
                column_name = marker.name or field_name
                columns.append(
                    ColumnDescriptor(column_name, field_name, "int", Role.FOREIGN_KEY, target)
                )
                constraints.append(
                    f"FOREIGN KEY ({column_name}) REFERENCES {table_name_of(target)}"
                    f"({IDENTITY_COLUMN}) ON DELETE CASCADE ON UPDATE CASCADE"
                )

        if len(primary) != 1:
            raise MappingError(
                f"{model.__name__} must declare exactly one primary key, found {len(primary)}"
            )
        ordered = tuple(primary + columns)
        names = [column.name for column in ordered]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise MappingError(f"{model.__name__} repeats column(s): {', '.join(duplicates)}")

        return cls(model, table_name, ordered, tuple(constraints))


def table_name_of(model: type[Entity]) -> str:
    name = getattr(model, "__tablename__", "")
    if not name:
        raise MappingError(f"{model.__name__} does not declare __tablename__")
    return name


def _role_marker(model: type, field_name: str, metadata: list[Any]):
    markers = [m for m in metadata if isinstance(m, (PrimaryKey, Column, ForeignKey))]
    if len(markers) > 1:
        raise MappingError(f"{model.__name__}.{field_name} carries more than one role marker")
    return markers[0] if markers else None
