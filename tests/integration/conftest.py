import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from fieldreport.config.settings import Settings
from fieldreport.database.connection import close_pool, get_connection, init_pool
from fieldreport.database.schema import create_schema


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "fieldreport_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        create_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    """Local ids whose document and audit rows are deleted after the test."""
    local_ids: list[str] = []
    yield local_ids
    if not local_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for local_id in local_ids:
                cur.execute(
                    "DELETE FROM audit_events WHERE metadata->>'localId' = %s", (local_id,)
                )
                cur.execute("DELETE FROM report_documents WHERE local_id = %s", (local_id,))
        conn.commit()
