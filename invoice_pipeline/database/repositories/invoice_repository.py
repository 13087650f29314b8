from collections.abc import Sequence
from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row

from invoice_pipeline.database.connection import get_connection
from invoice_pipeline.database.models import InvoiceDataRecord, InvoiceRecord
from invoice_pipeline.workflow.exceptions import InvalidTransitionError, InvoiceNotFoundError
from invoice_pipeline.workflow.status import InvoiceEvent, InvoiceStatus

_INVOICE_COLUMNS = "id, user_id, name, file_path, date, type, status, created_at"


def _tag_filter(tag_ids: Sequence[int] | None) -> tuple[str, tuple[Any, ...]]:
    if not tag_ids:
        return "", ()
    return (
        " AND EXISTS (SELECT 1 FROM invoice_tags it"
        " WHERE it.invoice_id = invoices.id AND it.tag_id = ANY(%s))",
        (list(tag_ids),),
    )


class InvoiceRepository:
    """Database operations for the invoices, invoice_data and invoice_tags tables."""

    def create(
        self,
        *,
        user_id: int,
        name: str,
        date: datetime,
        type: str,
        file_path: str,
        tag_ids: Sequence[int] = (),
    ) -> InvoiceRecord:
        """Insert a new invoice in UPLOADED status with its tag links."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO invoices (user_id, name, file_path, date, type, status)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_INVOICE_COLUMNS}
                    """,
                    (user_id, name, file_path, date, type, InvoiceStatus.UPLOADED.value),
                )
                row = cur.fetchone()
                if row is None:
                    raise RuntimeError("INSERT INTO invoices returned no row")
                for tag_id in tag_ids:
                    cur.execute(
                        "INSERT INTO invoice_tags (invoice_id, tag_id) VALUES (%s, %s)",
                        (row["id"], tag_id),
                    )
            conn.commit()
        return self._to_record(row, tag_ids=list(tag_ids))

    def find_by_id(self, invoice_id: int) -> InvoiceRecord:
        """Find an invoice by ID regardless of owner.

        Raises:
            InvoiceNotFoundError: if no invoice with this ID exists.
        """
        return self._find_one("id = %s", (invoice_id,), invoice_id)

    def find_for_user(self, invoice_id: int, user_id: int) -> InvoiceRecord:
        """Find an invoice owned by ``user_id``.

        Raises:
            InvoiceNotFoundError: if it does not exist or belongs to someone else.
        """
        return self._find_one("id = %s AND user_id = %s", (invoice_id, user_id), invoice_id)

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int,
        offset: int,
        tag_ids: Sequence[int] | None = None,
    ) -> list[InvoiceRecord]:
        tag_sql, tag_params = _tag_filter(tag_ids)
        return self._find_many(
            f"user_id = %s{tag_sql} ORDER BY created_at DESC LIMIT %s OFFSET %s",
            (user_id, *tag_params, limit, offset),
        )

    def count_for_user(
        self,
        user_id: int,
        *,
        status: str | None = None,
        tag_ids: Sequence[int] | None = None,
    ) -> int:
        tag_sql, tag_params = _tag_filter(tag_ids)
        status_sql = " AND status = %s" if status is not None else ""
        status_params: tuple[Any, ...] = (status,) if status is not None else ()
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT COUNT(*) FROM invoices WHERE user_id = %s{status_sql}{tag_sql}",
                    (user_id, *status_params, *tag_params),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def find_by_status(
        self,
        user_id: int,
        status: str,
        tag_ids: Sequence[int] | None = None,
    ) -> list[InvoiceRecord]:
        tag_sql, tag_params = _tag_filter(tag_ids)
        return self._find_many(
            f"user_id = %s AND status = %s{tag_sql} ORDER BY created_at DESC",
            (user_id, status, *tag_params),
        )

    def status_counts(self, user_id: int) -> dict[str, int]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT status, COUNT(*) FROM invoices WHERE user_id = %s GROUP BY status",
                    (user_id,),
                )
                rows = cur.fetchall()
        return {status: int(count) for status, count in rows}

    def update_status(self, invoice_id: int, status: str) -> None:
        """Overwrite the invoice status.

        Raises:
            InvoiceNotFoundError: if no invoice with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE invoices SET status = %s WHERE id = %s",
                    (status, invoice_id),
                )
                if cur.rowcount == 0:
                    raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
            conn.commit()

    def update(
        self,
        invoice_id: int,
        *,
        name: str,
        date: datetime,
        type: str,
        file_path: str | None,
        tag_ids: Sequence[int] | None = None,
    ) -> None:
        """Overwrite the editable fields of an invoice.

        When ``tag_ids`` is given the tag links are replaced in the same
        transaction; ``None`` leaves them untouched.

        Raises:
            InvoiceNotFoundError: if no invoice with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE invoices SET name = %s, date = %s, type = %s, file_path = %s"
                    " WHERE id = %s",
                    (name, date, type, file_path, invoice_id),
                )
                if cur.rowcount == 0:
                    conn.rollback()
                    raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
                if tag_ids is not None:
                    cur.execute("DELETE FROM invoice_tags WHERE invoice_id = %s", (invoice_id,))
                    for tag_id in tag_ids:
                        cur.execute(
                            "INSERT INTO invoice_tags (invoice_id, tag_id) VALUES (%s, %s)",
                            (invoice_id, tag_id),
                        )
            conn.commit()

    def complete_with_data(
        self,
        invoice_id: int,
        content: str,
        amount: float,
        *,
        expected_status: str = InvoiceStatus.PROCESSING.value,
    ) -> InvoiceDataRecord:
        """Attach the analysis result and flip the invoice to COMPLETED.

        Both writes share one transaction, and the status flip only applies
        while the row still holds ``expected_status``.

        Raises:
            InvalidTransitionError: if the status changed concurrently.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "UPDATE invoices SET status = %s WHERE id = %s AND status = %s",
                    (InvoiceStatus.COMPLETED.value, invoice_id, expected_status),
                )
                if cur.rowcount == 0:
                    conn.rollback()
                    raise InvalidTransitionError(
                        expected_status, InvoiceEvent.ANALYSIS_STORED.value
                    )
                cur.execute(
                    """
                    INSERT INTO invoice_data (content, amount, invoice_id)
                    VALUES (%s, %s, %s)
                    RETURNING id, content, amount, invoice_id
                    """,
                    (content, amount, invoice_id),
                )
                row = cur.fetchone()
                if row is None:
                    raise RuntimeError("INSERT INTO invoice_data returned no row")
            conn.commit()
        return InvoiceDataRecord(
            id=row["id"],
            content=row["content"],
            amount=float(row["amount"]),
            invoice_id=row["invoice_id"],
        )

    def delete(self, invoice_id: int) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM invoice_data WHERE invoice_id = %s", (invoice_id,))
                cur.execute("DELETE FROM invoice_tags WHERE invoice_id = %s", (invoice_id,))
                cur.execute("DELETE FROM invoices WHERE id = %s", (invoice_id,))
                if cur.rowcount == 0:
                    raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
            conn.commit()

    def _find_one(
        self, where: str, params: tuple[Any, ...], invoice_id: int
    ) -> InvoiceRecord:
        records = self._find_many(where, params)
        if not records:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return records[0]

    def _find_many(self, where: str, params: tuple[Any, ...]) -> list[InvoiceRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE {where}", params)
                rows = cur.fetchall()
                if not rows:
                    return []
                ids = [row["id"] for row in rows]
                tags = self._load_tags(cur, ids)
                data = self._load_data(cur, ids)
        return [
            self._to_record(
                row,
                tag_ids=tags.get(row["id"], []),
                invoice_data=data.get(row["id"], []),
            )
            for row in rows
        ]

    @staticmethod
    def _load_tags(cur: psycopg.Cursor[Any], ids: list[int]) -> dict[int, list[int]]:
        cur.execute(
            "SELECT invoice_id, tag_id FROM invoice_tags WHERE invoice_id = ANY(%s)"
            " ORDER BY tag_id",
            (ids,),
        )
        tags: dict[int, list[int]] = {}
        for row in cur.fetchall():
            tags.setdefault(row["invoice_id"], []).append(row["tag_id"])
        return tags

    @staticmethod
    def _load_data(
        cur: psycopg.Cursor[Any], ids: list[int]
    ) -> dict[int, list[InvoiceDataRecord]]:
        cur.execute(
            "SELECT id, content, amount, invoice_id FROM invoice_data"
            " WHERE invoice_id = ANY(%s) ORDER BY id",
            (ids,),
        )
        data: dict[int, list[InvoiceDataRecord]] = {}
        for row in cur.fetchall():
            data.setdefault(row["invoice_id"], []).append(
                InvoiceDataRecord(
                    id=row["id"],
                    content=row["content"],
                    amount=float(row["amount"]),
                    invoice_id=row["invoice_id"],
                )
            )
        return data

    @staticmethod
    def _to_record(
        row: dict[str, Any],
        *,
        tag_ids: list[int] | None = None,
        invoice_data: list[InvoiceDataRecord] | None = None,
    ) -> InvoiceRecord:
        return InvoiceRecord(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            file_path=row["file_path"],
            date=row["date"],
            type=row["type"],
            status=row["status"],
            created_at=row.get("created_at"),
            tag_ids=tag_ids or [],
            invoice_data=invoice_data or [],
        )
