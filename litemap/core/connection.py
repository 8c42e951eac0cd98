"""Database connection provider used by every mapper operation.

:class:`ConnectionProvider` wraps a synchronous SQLAlchemy :class:`Engine`.
Each call to :meth:`ConnectionProvider.connect` hands out one connection inside
a transaction and releases it on the same call stack, whatever happens.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from litemap.errors import ConnectionFailure
from litemap.settings import Settings, get_settings

__all__ = ["ConnectionProvider"]

logger = logging.getLogger(__name__)


class ConnectionProvider:
    """Hands out scoped connections from a fixed engine.

    Parameters
    engine
        SQLAlchemy *Engine* connected to the target Postgres (or compatible)
        database.  Credentials are fixed when the engine is built.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine: Engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Provide a transactional connection scope.

        Commits when the block exits normally and rolls back when it raises.
        A connection that cannot be opened is logged and surfaced as
        :class:`~litemap.errors.ConnectionFailure`.
        """
        try:
            conn = self._engine.connect()
        except SQLAlchemyError as exc:
            logger.exception("Failed to connect to %s", self._engine.url.render_as_string())
            raise ConnectionFailure(str(exc)) from exc
        try:
            with conn.begin():
                yield conn
        finally:
            conn.close()

    def dispose(self) -> None:
        """Close every pooled connection held by the engine."""
        self._engine.dispose()

    @classmethod
    def from_database_url(cls, url: str, *, echo: bool = False) -> "ConnectionProvider":
        """Create a :class:`ConnectionProvider` from a database URL."""
        engine = create_engine(url, echo=echo, future=True)
        return cls(engine)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ConnectionProvider":
        settings = settings or get_settings()
        return cls.from_database_url(settings.database_url, echo=settings.echo_sql)
