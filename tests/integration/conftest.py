import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from vigilance.config.settings import Settings
from vigilance.database.connection import close_pool, get_connection, init_pool
from vigilance.database.models import DocumentRecord, ExtractionRecord
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "vigilance" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "vigilance_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))  # type: ignore[arg-type]
            conn.commit()
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


@pytest.fixture(autouse=True)
def _requires_db(integration_pool: None) -> None:
    """Every integration test needs the pool; skip them all without a DB."""


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def test_user_id() -> Generator[str, None, None]:
    """A unique owner; every row written under it is removed afterwards."""
    user_id = f"it-{uuid.uuid4().hex[:12]}"
    yield user_id
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM processing_logs WHERE user_id = %s", (user_id,))
            cur.execute("DELETE FROM documents WHERE user_id = %s", (user_id,))
        conn.commit()


@pytest.fixture
def seed_document(test_user_id: str) -> DocumentRecord:
    return DocumentsRepository().create(
        user_id=test_user_id,
        filename="report.pdf",
        file_path=f"{test_user_id}/abc_report.pdf",
        file_size=1024,
        mime_type="application/pdf",
    )


@pytest.fixture
def seed_extraction(seed_document: DocumentRecord, test_user_id: str) -> ExtractionRecord:
    return ExtractionsRepository().create(
        document_id=seed_document.id,
        user_id=test_user_id,
        raw_data={"drug": "Aspirin", "reaction": "Rash"},
        status="completed",
    )
