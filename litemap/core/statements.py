"""SQL text synthesised from :class:`~litemap.core.metadata.EntityMetadata`.

Every value travels as a named bind parameter (``:column``); identifiers come
only from the model declaration.  The shapes match the tables this mapper has
always produced, so existing schemas stay compatible.
"""

from __future__ import annotations

from litemap.core.metadata import SERIAL_IDENTITY, EntityMetadata
from litemap.core.model import IDENTITY_COLUMN

__all__ = [
    "identity_clause",
    "create_table",
    "insert",
    "select_by_id",
    "select_last",
    "select_all",
    "update_by_id",
    "delete_by_id",
]

# SQLite only auto-assigns keys for INTEGER PRIMARY KEY columns.
_IDENTITY_BY_DIALECT: dict[str, str] = {
    "sqlite": "INTEGER PRIMARY KEY AUTOINCREMENT",
}


def identity_clause(dialect_name: str) -> str:
    return _IDENTITY_BY_DIALECT.get(dialect_name, SERIAL_IDENTITY)


def create_table(metadata: EntityMetadata, identity: str = SERIAL_IDENTITY) -> str:
    parts = [f"{IDENTITY_COLUMN} {identity}"]
    parts.extend(f"{column.name} {column.sql_type}" for column in metadata.data_columns)
    parts.extend(metadata.constraints)
    return f"CREATE TABLE IF NOT EXISTS {metadata.table_name} ({', '.join(parts)})"


def insert(metadata: EntityMetadata) -> str:
    columns = metadata.data_columns
    if not columns:
        return f"INSERT INTO {metadata.table_name} DEFAULT VALUES RETURNING {IDENTITY_COLUMN}"
    names = ", ".join(column.name for column in columns)
    params = ", ".join(f":{column.name}" for column in columns)
    return (
        f"INSERT INTO {metadata.table_name}({names}) VALUES ({params}) "
        f"RETURNING {IDENTITY_COLUMN}"
    )


def select_by_id(metadata: EntityMetadata) -> str:
    return f"SELECT * FROM {metadata.table_name} WHERE {IDENTITY_COLUMN} = :{IDENTITY_COLUMN}"


def select_last(metadata: EntityMetadata) -> str:
    return f"SELECT * FROM {metadata.table_name} ORDER BY {IDENTITY_COLUMN} DESC LIMIT 1"


def select_all(metadata: EntityMetadata) -> str:
    return f"SELECT * FROM {metadata.table_name}"


def update_by_id(metadata: EntityMetadata) -> str:
    """Row-value UPDATE; a lone column uses plain ``SET col = :col``.

    PostgreSQL rejects ``SET (a) = (:a)`` since a one-element list is not a
    row expression there.
    """
    columns = metadata.data_columns
    if not columns:
        raise ValueError(f"{metadata.table_name} has no columns to update")
    where = f"WHERE {IDENTITY_COLUMN} = :{IDENTITY_COLUMN}"
    if len(columns) == 1:
        name = columns[0].name
        return f"UPDATE {metadata.table_name} SET {name} = :{name} {where}"
    names = ", ".join(column.name for column in columns)
    params = ", ".join(f":{column.name}" for column in columns)
    return f"UPDATE {metadata.table_name} SET ({names}) = ({params}) {where}"


def delete_by_id(metadata: EntityMetadata) -> str:
    return f"DELETE FROM {metadata.table_name} WHERE {IDENTITY_COLUMN} = :{IDENTITY_COLUMN}"
