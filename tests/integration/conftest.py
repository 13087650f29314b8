import os
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import psycopg
import pytest

from invoice_pipeline.config.settings import Settings
from invoice_pipeline.database.connection import apply_schema, close_pool, get_connection, init_pool
from invoice_pipeline.database.models import InvoiceRecord
from invoice_pipeline.database.repositories.invoice_repository import InvoiceRepository
from invoice_pipeline.database.repositories.tag_repository import TagRepository

INTEGRATION_USER_ID = 990001


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "invoices_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        psycopg.connect(
            host=test_settings.db_host,
            port=test_settings.db_port,
            dbname=test_settings.db_database,
            user=test_settings.db_username,
            password=test_settings.db_password,
            connect_timeout=3,
        ).close()
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    init_pool(test_settings)
    with get_connection() as conn:
        apply_schema(conn)
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def repository(integration_pool: None) -> Generator[InvoiceRepository, None, None]:
    yield InvoiceRepository()
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM invoices WHERE user_id = %s", (INTEGRATION_USER_ID,)
            )
            cur.execute("DELETE FROM tags WHERE user_id = %s", (INTEGRATION_USER_ID,))
        conn.commit()


@pytest.fixture
def tag_repository(repository: InvoiceRepository) -> TagRepository:
    return TagRepository()


@pytest.fixture
def seed_tag(db_conn: psycopg.Connection[Any], repository: InvoiceRepository) -> int:
    with db_conn.cursor() as cur:
        cur.execute(
            "INSERT INTO tags (user_id, name) VALUES (%s, %s) RETURNING id",
            (INTEGRATION_USER_ID, "energy"),
        )
        row = cur.fetchone()
        assert row is not None
    db_conn.commit()
    return int(row[0])


@pytest.fixture
def seed_invoice(repository: InvoiceRepository) -> InvoiceRecord:
    return repository.create(
        user_id=INTEGRATION_USER_ID,
        name="EDF June",
        date=datetime(2025, 6, 17, tzinfo=timezone.utc),
        type="RECEIVED",
        file_path="s3://invoice-files/invoices/990001/test.pdf",
    )
