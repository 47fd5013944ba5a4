from typing import Any

from psycopg.rows import dict_row

from vigilance.database.connection import get_connection
from vigilance.database.models import NarrativeRecord
from vigilance.processor.exceptions import NarrativeNotFoundError

_COLUMNS = """
    id, extraction_id, user_id, title, content, template_used, status,
    created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> NarrativeRecord:
    return NarrativeRecord(
        id=row["id"],
        extraction_id=row["extraction_id"],
        user_id=row["user_id"],
        title=row["title"],
        content=row["content"],
        template_used=row["template_used"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class NarrativesRepository:
    """Database operations for the narratives table."""

    def create(
        self,
        *,
        extraction_id: int,
        user_id: str,
        title: str,
        content: str,
        template_used: str = "default",
        status: str = "draft",
    ) -> NarrativeRecord:
        """Insert a narrative row and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO narratives
                    (extraction_id, user_id, title, content, template_used, status)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (extraction_id, user_id, title, content, template_used, status),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO narratives returned no row")
        return _to_record(row)

    def find_by_id(self, narrative_id: int) -> NarrativeRecord:
        """Find a narrative by ID.

        Raises:
            NarrativeNotFoundError: if no narrative with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM narratives WHERE id = %s",
                    (narrative_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise NarrativeNotFoundError(f"Narrative {narrative_id} not found")
        return _to_record(row)

    def list_all(
        self,
        extraction_id: int | None = None,
        user_id: str | None = None,
    ) -> list[NarrativeRecord]:
        """Return narratives newest first, optionally for one extraction or owner."""
        query = f"SELECT {_COLUMNS} FROM narratives"
        conditions: list[str] = []
        params: list[Any] = []
        if extraction_id is not None:
            conditions.append("extraction_id = %s")
            params.append(extraction_id)
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

    def update_content(self, narrative_id: int, content: str, status: str) -> None:
        """Save an edited narrative.

        Raises:
            NarrativeNotFoundError: if no narrative with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE narratives
                    SET content = %s, status = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (content, status, narrative_id),
                )
                if cur.rowcount == 0:
                    raise NarrativeNotFoundError(f"Narrative {narrative_id} not found")
            conn.commit()
