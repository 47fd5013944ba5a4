from typing import Any

from psycopg.rows import dict_row

from vigilance.database.connection import get_connection
from vigilance.database.models import DocumentRecord
from vigilance.processor.exceptions import DocumentNotFoundError

_COLUMNS = """
    id, user_id, filename, file_path, file_size, mime_type,
    upload_status, created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        user_id=row["user_id"],
        filename=row["filename"],
        file_path=row["file_path"],
        file_size=row["file_size"],
        mime_type=row["mime_type"],
        upload_status=row["upload_status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class DocumentsRepository:
    """Database operations for the documents table."""

    def create(
        self,
        *,
        user_id: str,
        filename: str,
        file_path: str,
        file_size: int,
        mime_type: str,
        upload_status: str = "pending",
    ) -> DocumentRecord:
        """Insert a document row and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                    (user_id, filename, file_path, file_size, mime_type, upload_status)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (user_id, filename, file_path, file_size, mime_type, upload_status),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return _to_record(row)

    def find_by_id(self, document_id: int) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def list_all(self, user_id: str | None = None) -> list[DocumentRecord]:
        """Return documents newest first, optionally for one owner."""
        query = f"SELECT {_COLUMNS} FROM documents"
        params: tuple[Any, ...] = ()
        if user_id is not None:
            query += " WHERE user_id = %s"
            params = (user_id,)
        query += " ORDER BY created_at DESC"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def update_status(self, document_id: int, upload_status: str) -> None:
        """Set upload_status.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET upload_status = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (upload_status, document_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    def delete(self, document_id: int) -> None:
        """Delete a document and, by cascade, its extractions and narratives."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()
