from typing import Any

from psycopg.rows import dict_row

from invoice_pipeline.database.connection import get_connection
from invoice_pipeline.database.models import TagRecord, TagUsageRecord
from invoice_pipeline.workflow.exceptions import TagNotFoundError

_TAG_COLUMNS = "id, user_id, name, description, colors, created_at"


class TagRepository:
    """Database operations for the tags table and its invoice links."""

    def create(self, *, user_id: int, name: str, description: str, colors: str) -> TagRecord:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO tags (user_id, name, description, colors)
                    VALUES (%s, %s, %s, %s)
                    RETURNING {_TAG_COLUMNS}
                    """,
                    (user_id, name, description, colors),
                )
                row = cur.fetchone()
                if row is None:
                    raise RuntimeError("INSERT INTO tags returned no row")
            conn.commit()
        return self._to_record(row)

    def list_for_user(self, user_id: int) -> list[TagRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_TAG_COLUMNS} FROM tags WHERE user_id = %s"
                    " ORDER BY created_at DESC, id DESC",
                    (user_id,),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def find_for_user(self, tag_id: int, user_id: int) -> TagRecord:
        """Find a tag owned by ``user_id``.

        Raises:
            TagNotFoundError: if it does not exist or belongs to someone else.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_TAG_COLUMNS} FROM tags WHERE id = %s AND user_id = %s",
                    (tag_id, user_id),
                )
                row = cur.fetchone()
        if row is None:
            raise TagNotFoundError(f"Tag {tag_id} not found")
        return self._to_record(row)

    def count_owned(self, tag_ids: list[int], user_id: int) -> int:
        """Count how many of ``tag_ids`` exist and belong to ``user_id``."""
        if not tag_ids:
            return 0
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM tags WHERE id = ANY(%s) AND user_id = %s",
                    (list(set(tag_ids)), user_id),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def update(self, tag_id: int, *, name: str, description: str, colors: str) -> TagRecord:
        """Overwrite the editable fields of a tag.

        Raises:
            TagNotFoundError: if no tag with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE tags SET name = %s, description = %s, colors = %s
                    WHERE id = %s
                    RETURNING {_TAG_COLUMNS}
                    """,
                    (name, description, colors, tag_id),
                )
                row = cur.fetchone()
                if row is None:
                    raise TagNotFoundError(f"Tag {tag_id} not found")
            conn.commit()
        return self._to_record(row)

    def delete(self, tag_id: int) -> None:
        """Delete a tag after unlinking it from every invoice."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM invoice_tags WHERE tag_id = %s", (tag_id,))
                cur.execute("DELETE FROM tags WHERE id = %s", (tag_id,))
                if cur.rowcount == 0:
                    raise TagNotFoundError(f"Tag {tag_id} not found")
            conn.commit()

    def usage_stats(self, user_id: int) -> list[TagUsageRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT t.id, t.user_id, t.name, t.description, t.colors, t.created_at,
                           COUNT(it.invoice_id) AS usage_count
                    FROM tags t
                    LEFT JOIN invoice_tags it ON it.tag_id = t.id
                    WHERE t.user_id = %s
                    GROUP BY t.id
                    ORDER BY t.created_at DESC, t.id DESC
                    """,
                    (user_id,),
                )
                rows = cur.fetchall()
        return [
            TagUsageRecord(tag=self._to_record(row), usage_count=int(row["usage_count"]))
            for row in rows
        ]

    @staticmethod
    def _to_record(row: dict[str, Any]) -> TagRecord:
        return TagRecord(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            colors=row["colors"],
            created_at=row.get("created_at"),
        )
