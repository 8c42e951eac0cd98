"""Generic per-entity mapper: table creation, CRUD and row hydration.

A :class:`Mapper` owns the :class:`~litemap.core.metadata.EntityMetadata` of one
model type, renders SQL from it, runs that SQL through a
:class:`~litemap.core.connection.ConnectionProvider` and turns rows back into
model instances.  Foreign-key columns are hydrated into full referenced
entities by asking a :class:`~litemap.core.registry.MapperRegistry` for the
referenced type's mapper.

No public operation raises for database or mapping trouble; each returns a
:class:`~litemap.result.Result` so callers can tell *not found* from *failed*.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.engine import Connection, CursorResult, Row
from sqlalchemy.exc import SQLAlchemyError

from litemap.core import statements
from litemap.core.connection import ConnectionProvider
from litemap.core.metadata import ColumnDescriptor, EntityMetadata
from litemap.core.model import IDENTITY_COLUMN, Entity
from litemap.core.registry import MapperRegistry
from litemap.core.registry import registry as global_registry
from litemap.errors import (
    CyclicReferenceError,
    MapperError,
    MappingError,
    ReadBackError,
    ResolutionError,
    SchemaMismatchError,
    StatementError,
)
from litemap.result import Result
from litemap.settings import Settings, get_settings

__all__ = ["Mapper"]

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)

# (model, id) pairs being hydrated further up the current call stack.
Trail = tuple[tuple[type, int], ...]


class Mapper(Generic[T]):
    """Schema and CRUD service for a single :class:`Entity` subclass.

    Parameters
    model
        The entity type this mapper manages.
    registry
        Registry used to resolve foreign keys.  Defaults to the process-wide
        :data:`litemap.core.registry.registry`.  The mapper does not register
        itself.
    settings
        Overrides :func:`litemap.settings.get_settings`.

    Raises
    MappingError
        If ``model`` cannot be mapped.
    """

    def __init__(
        self,
        model: type[T],
        registry: Optional[MapperRegistry] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._model = model
        self._metadata = EntityMetadata.from_model(model)
        self._registry = registry if registry is not None else global_registry
        self._auto_create = settings.auto_create_tables
        self._max_depth = settings.max_resolution_depth

    @property
    def model(self) -> type[T]:
        return self._model

    @property
    def metadata(self) -> EntityMetadata:
        return self._metadata

    @property
    def registry(self) -> MapperRegistry:
        return self._registry

    @property
    def table_name(self) -> str:
        return self._metadata.table_name

    @property
    def column_names(self) -> list[str]:
        return self._metadata.column_names

    @property
    def column_types(self) -> list[str]:
        return self._metadata.column_types

    @property
    def constraints(self) -> tuple[str, ...]:
        return self._metadata.constraints

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def ensure_table(self, provider: ConnectionProvider) -> Result[bool]:
        """Create the table if it does not exist yet."""
        return self._guard("ensure_table", self._ensure_table, provider)

    def insert(self, provider: ConnectionProvider, instance: T) -> Result[T]:
        """Insert ``instance`` and return the stored row as a new instance.

        The generated key is taken from the INSERT itself, never from a
        follow-up "highest id" query.  ``instance`` is left untouched.
        If the row committed but cannot be read back, the result fails with
        :class:`~litemap.errors.ReadBackError` carrying the new id.
        """
        if self._auto_create:
            created = self.ensure_table(provider)
            if not created:
                return created  # type: ignore[return-value]
        stored = self._guard("insert", self._insert, provider, instance)
        if not stored:
            return stored
        return self._read_back("insert", provider, stored.value)

    def get_by_id(self, provider: ConnectionProvider, id: int) -> Result[T]:
        return self._guard(
            "get_by_id",
            self._read_one,
            provider,
            statements.select_by_id(self._metadata),
            {IDENTITY_COLUMN: id},
        )

    def get_last_inserted(self, provider: ConnectionProvider) -> Result[T]:
        """Return the row with the highest id.

        Concurrent inserts from other callers can make this a different row
        from the one the caller just wrote.
        """
        return self._guard(
            "get_last_inserted", self._read_one, provider, statements.select_last(self._metadata), {}
        )

    def get_all(self, provider: ConnectionProvider) -> Result[list[T]]:
        return self._guard("get_all", self._read_all, provider)

    def update_by_id(self, provider: ConnectionProvider, id: int, instance: T) -> Result[T]:
        """Overwrite every declared column of row ``id`` with ``instance``'s values.

        The identity of the row never changes, whatever ``instance.id`` holds.
        The refreshed row is read back in its own connection scope.
        A failed read-back after a committed update fails with
        :class:`~litemap.errors.ReadBackError`.
        """
        if not self._metadata.data_columns:
            return self.get_by_id(provider, id)
        updated = self._guard("update_by_id", self._update, provider, id, instance)
        if not updated:
            return updated
        return self._read_back("update_by_id", provider, id)

    def delete_by_id(self, provider: ConnectionProvider, id: int) -> Result[bool]:
        """Delete row ``id``; ``Ok(True)`` if a row went away, else not found."""
        return self._guard("delete_by_id", self._delete, provider, id)

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    def _ensure_table(self, provider: ConnectionProvider) -> Result[bool]:
        identity = statements.identity_clause(provider.dialect_name)
        with provider.connect() as conn:
            self._execute(conn, statements.create_table(self._metadata, identity))
        return Result.ok(True)

    def _insert(self, provider: ConnectionProvider, instance: T) -> Result[int]:
        params = self._bind_values(instance)
        with provider.connect() as conn:
            new_id = self._execute(conn, statements.insert(self._metadata), params).scalar_one()
        logger.debug("Inserted %s row %s", self.table_name, new_id)
        return Result.ok(int(new_id))

    def _read_one(self, provider: ConnectionProvider, sql: str, params: dict[str, Any]) -> Result[T]:
        with provider.connect() as conn:
            row = self._execute(conn, sql, params).first()
            if row is None:
                return Result.not_found()
            return Result.ok(self._hydrate(conn, row, ()))

    def _read_all(self, provider: ConnectionProvider) -> Result[list[T]]:
        with provider.connect() as conn:
            rows = self._execute(conn, statements.select_all(self._metadata)).all()
            return Result.ok([self._hydrate(conn, row, ()) for row in rows])

    def _update(self, provider: ConnectionProvider, id: int, instance: T) -> Result[bool]:
        params = self._bind_values(instance)
        params[IDENTITY_COLUMN] = id
        with provider.connect() as conn:
            affected = self._execute(conn, statements.update_by_id(self._metadata), params).rowcount
        if not affected:
            return Result.not_found()
        return Result.ok(True)

    def _delete(self, provider: ConnectionProvider, id: int) -> Result[bool]:
        with provider.connect() as conn:
            affected = self._execute(
                conn, statements.delete_by_id(self._metadata), {IDENTITY_COLUMN: id}
            ).rowcount
        if not affected:
            return Result.not_found()
        return Result.ok(True)

    def _read_back(self, operation: str, provider: ConnectionProvider, id: int) -> Result[T]:
        """Re-read a row this mapper just wrote, tagging read failures."""
        result = self.get_by_id(provider, id)
        if not result.is_failed:
            return result
        error = ReadBackError(
            f"{operation} on {self.table_name} committed row {id} but could not read it back",
            id=id,
        )
        error.__cause__ = result.error
        logger.error("%s", error)
        return Result.failed(error)

    def _execute(
        self, conn: Connection, sql: str, params: Optional[dict[str, Any]] = None
    ) -> CursorResult:
        logger.debug("%s %s", sql, params or {})
        try:
            return conn.execute(text(sql), params or {})
        except SQLAlchemyError as exc:
            raise StatementError(str(getattr(exc, "orig", None) or exc), sql=sql) from exc

    def _guard(self, operation: str, func: Callable[..., Result], *args: Any) -> Result:
        """Run ``func`` and convert mapper/database errors into a failed result."""
        try:
            return func(*args)
        except MapperError as exc:
            logger.error("%s on %s failed: %s", operation, self.table_name, exc)
            return Result.failed(exc)
        except SQLAlchemyError as exc:
            logger.exception("%s on %s failed", operation, self.table_name)
            return Result.failed(StatementError(str(exc)))

    # ------------------------------------------------------------------
    # Dehydration / hydration
    # ------------------------------------------------------------------

    def _bind_values(self, instance: T) -> dict[str, Any]:
        if not isinstance(instance, self._model):
            raise MappingError(
                f"{self._model.__name__} mapper cannot store {type(instance).__name__}"
            )
        params: dict[str, Any] = {}
        for column in self._metadata.data_columns:
            value = getattr(instance, column.field_name)
            if column.is_foreign_key:
                value = self._reference_key(column, value)
            params[column.name] = value
        return params

    @staticmethod
    def _reference_key(column: ColumnDescriptor, referenced: Any) -> Optional[int]:
        """Return the stored key for a foreign-key field value."""
        if referenced is None:
            return None
        target = column.referenced_type
        if target is None or not isinstance(referenced, target):
            raise ResolutionError(
                f"{column.name} expects {getattr(target, '__name__', target)}, "
                f"got {type(referenced).__name__}"
            )
        if not referenced.id:
            raise ResolutionError(
                f"{column.name} references a {target.__name__} that has not been persisted"
            )
        return referenced.id

    def _fetch_by_id(self, conn: Connection, id: int, trail: Trail) -> Optional[T]:
        """Load one row on an already open connection (nested resolution)."""
        row = self._execute(conn, statements.select_by_id(self._metadata), {IDENTITY_COLUMN: id}).first()
        if row is None:
            return None
        return self._hydrate(conn, row, trail)

    def _hydrate(self, conn: Connection, row: Row, trail: Trail) -> T:
        mapping = row._mapping
        missing = [column.name for column in self._metadata.columns if column.name not in mapping]
        if missing:
            raise SchemaMismatchError(
                f"{self.table_name} rows lack declared column(s): {', '.join(missing)}"
            )

        key = (self._model, mapping[IDENTITY_COLUMN])
        if key in trail:
            raise CyclicReferenceError(
                f"{self._model.__name__}#{key[1]} references itself through its foreign keys",
                trail=trail + (key,),
            )
        if len(trail) >= self._max_depth:
            raise CyclicReferenceError(
                f"Foreign-key resolution exceeded depth {self._max_depth}", trail=trail + (key,)
            )
        trail = trail + (key,)

        data: dict[str, Any] = {}
        for column in self._metadata.columns:
            value = mapping[column.name]
            if column.is_foreign_key:
                if value is not None:
                    value = self._resolve(conn, column, value, trail)
                if value is None:
                    # Unresolved references keep the field's declared default.
                    continue
            data[column.field_name] = value
        try:
            return self._model.model_validate(data)
        except ValidationError as exc:
            raise SchemaMismatchError(
                f"{self.table_name} row {key[1]} does not fit {self._model.__name__}: {exc}"
            ) from exc

    def _resolve(
        self, conn: Connection, column: ColumnDescriptor, ref_id: Any, trail: Trail
    ) -> Optional[Entity]:
        """Hydrate the entity a foreign-key column points at, or ``None``."""
        target = column.referenced_type
        if target is None:
            raise MappingError(f"{self.table_name}.{column.name} has no referenced type")
        mapper = self._registry.lookup(target)
        if mapper is None:
            logger.warning(
                "No mapper registered for %s; leaving %s.%s unset",
                target.__name__,
                self.table_name,
                column.name,
            )
            return None
        referenced = mapper._fetch_by_id(conn, int(ref_id), trail)
        if referenced is None:
            logger.warning(
                "%s.%s points at missing %s row %s",
                self.table_name,
                column.name,
                mapper.table_name,
                ref_id,
            )
        return referenced

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Mapper model={self._model.__name__} table={self.table_name!r}>"
