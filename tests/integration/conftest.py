import os
import uuid
from collections.abc import Generator
from functools import partial
from pathlib import Path
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import (
    build_conninfo,
    close_pool,
    get_connection,
    init_pool,
    open_listen_connection,
)
from app.notify.postgres_notifier import PostgresNotifier

_SCHEMA = Path(__file__).resolve().parents[2] / "app" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docintake_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        with psycopg.connect(build_conninfo(test_settings), connect_timeout=3) as conn:
            conn.execute(_SCHEMA.read_text(encoding="utf-8"))
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    init_pool(test_settings)
    try:
        yield
    finally:
        close_pool()


@pytest.fixture(autouse=True)
def _require_database(integration_pool: None) -> None:
    """Every integration test needs the pool and schema."""


@pytest.fixture
def db_conn() -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def owner_id() -> Generator[str, None, None]:
    """A fresh owner whose rows are deleted afterwards."""
    owner = f"it-{uuid.uuid4().hex[:12]}"
    yield owner
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM transactions WHERE owner_id = %s", (owner,))
            cur.execute("DELETE FROM documents WHERE owner_id = %s", (owner,))
        conn.commit()


@pytest.fixture
def pg_notifier(test_settings: Settings) -> PostgresNotifier:
    return PostgresNotifier(partial(open_listen_connection, test_settings))
