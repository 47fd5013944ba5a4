from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from vigilance.database.connection import get_connection
from vigilance.database.models import ExtractionRecord
from vigilance.processor.exceptions import ExtractionNotFoundError

_COLUMNS = """
    id, document_id, user_id, raw_data, processed_data, status,
    created_at, updated_at
"""


def _jsonb(value: dict[str, Any] | None) -> Jsonb | None:
    return Jsonb(value) if value is not None else None


def _to_record(row: dict[str, Any]) -> ExtractionRecord:
    return ExtractionRecord(
        id=row["id"],
        document_id=row["document_id"],
        user_id=row["user_id"],
        status=row["status"],
        raw_data=row["raw_data"],
        processed_data=row["processed_data"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ExtractionsRepository:
    """Database operations for the extractions table."""

    def create(
        self,
        *,
        document_id: int,
        user_id: str,
        raw_data: dict[str, Any] | None,
        processed_data: dict[str, Any] | None = None,
        status: str = "completed",
    ) -> ExtractionRecord:
        """Insert an extraction row and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO extractions
                    (document_id, user_id, raw_data, processed_data, status)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        document_id,
                        user_id,
                        _jsonb(raw_data),
                        _jsonb(processed_data),
                        status,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO extractions returned no row")
        return _to_record(row)

    def find_by_id(self, extraction_id: int) -> ExtractionRecord:
        """Find an extraction by ID.

        Raises:
            ExtractionNotFoundError: if no extraction with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM extractions WHERE id = %s",
                    (extraction_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise ExtractionNotFoundError(f"Extraction {extraction_id} not found")
        return _to_record(row)

    def list_all(
        self,
        document_id: int | None = None,
        user_id: str | None = None,
    ) -> list[ExtractionRecord]:
        """Return extractions newest first, optionally for one document or owner."""
        query = f"SELECT {_COLUMNS} FROM extractions"
        conditions: list[str] = []
        params: list[Any] = []
        if document_id is not None:
            conditions.append("document_id = %s")
            params.append(document_id)
        if user_id is not None:
            conditions.append("user_id = %s")
            params.append(user_id)
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at DESC"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def update_processed_data(
        self,
        extraction_id: int,
        processed_data: dict[str, Any] | None,
        status: str,
    ) -> None:
        """Replace processed_data and status.

        Raises:
            ExtractionNotFoundError: if no extraction with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE extractions
                    SET processed_data = %s, status = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (_jsonb(processed_data), status, extraction_id),
                )
                if cur.rowcount == 0:
                    raise ExtractionNotFoundError(f"Extraction {extraction_id} not found")
            conn.commit()
