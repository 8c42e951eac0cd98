"""Mapper engine: metadata derivation, SQL synthesis and row hydration."""

from .connection import ConnectionProvider  # noqa: F401
from .mapper import Mapper  # noqa: F401
from .metadata import ColumnDescriptor, EntityMetadata, Role  # noqa: F401
from .model import Column, Entity, ForeignKey, PrimaryKey  # noqa: F401
from .registry import MapperRegistry  # noqa: F401
