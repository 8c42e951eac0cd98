import sys
import pathlib
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))

import pytest
import sqlalchemy as sa

from litemap.core.connection import ConnectionProvider
from litemap.errors import ConnectionFailure
from litemap.settings import Settings


def _make_provider() -> ConnectionProvider:
    provider = ConnectionProvider(sa.create_engine("sqlite:///:memory:"))
    with provider.connect() as conn:
        conn.execute(sa.text("CREATE TABLE notes (id INTEGER PRIMARY KEY, body varchar)"))
    return provider


def _count(provider: ConnectionProvider) -> int:
    with provider.connect() as conn:
        return conn.execute(sa.text("SELECT COUNT(*) FROM notes")).scalar_one()


def test_connect_commits_on_success():
    provider = _make_provider()
    with provider.connect() as conn:
        conn.execute(sa.text("INSERT INTO notes(body) VALUES ('kept')"))
    assert _count(provider) == 1


def test_connect_rolls_back_on_error():
    provider = _make_provider()
    with pytest.raises(RuntimeError):
        with provider.connect() as conn:
            conn.execute(sa.text("INSERT INTO notes(body) VALUES ('lost')"))
            raise RuntimeError("boom")
    assert _count(provider) == 0


def test_unreachable_database_raises_connection_failure():
    provider = ConnectionProvider.from_database_url("sqlite:////nonexistent-dir/nested/db.sqlite")
    with pytest.raises(ConnectionFailure):
        with provider.connect():
            pass


def test_from_settings():
    provider = ConnectionProvider.from_settings(Settings(database_url="sqlite:///:memory:"))
    assert provider.dialect_name == "sqlite"
    assert provider.engine.echo is False
    provider.dispose()
