from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from vigilance.compliance.models import LogDetails
from vigilance.database.connection import get_connection
from vigilance.database.models import ProcessingLogRecord

_COLUMNS = "id, document_id, user_id, action, details, timestamp"


def _to_record(row: dict[str, Any]) -> ProcessingLogRecord:
    return ProcessingLogRecord(
        id=row["id"],
        document_id=row["document_id"],
        user_id=row["user_id"],
        action=row["action"],
        details=row["details"],
        timestamp=row["timestamp"],
    )


class ProcessingLogsRepository:
    """Append-only access to the processing_logs table."""

    def append(
        self,
        *,
        user_id: str,
        details: LogDetails,
        document_id: int | str | None = None,
    ) -> None:
        """Insert one log row. The action comes from the payload type."""
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO processing_logs (document_id, user_id, action, details)
                VALUES (%s, %s, %s, %s)
                """,
                (
                    str(document_id) if document_id is not None else None,
                    user_id,
                    details.action,
                    Jsonb(details.to_details()),
                ),
            )
            conn.commit()

    def find_latest_progress(self, session_id: str) -> ProcessingLogRecord | None:
        """Return the newest progress_update row for a processing session."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM processing_logs
                    WHERE action = 'progress_update'
                      AND details ->> 'id' = %s
                    ORDER BY timestamp DESC, id DESC
                    LIMIT 1
                    """,
                    (session_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)

    def list_all(
        self,
        document_id: int | str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[ProcessingLogRecord]:
        """Return log rows newest first; every matching row unless *limit* is given."""
        query = f"SELECT {_COLUMNS} FROM processing_logs"
        conditions: list[str] = []
        params: list[Any] = []
        if document_id is not None:
            conditions.append("document_id = %s")
            params.append(str(document_id))
        if user_id is not None:
            conditions.append("user_id = %s")
            params.append(user_id)
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY timestamp DESC, id DESC"
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]
