"""Limit-order repository — SQLite CRUD for the limit_orders table."""

import sqlite3
import uuid
from dataclasses import asdict, replace
from typing import Optional

from metalledger.engine.models import LimitOrder
from metalledger.repos.db import get_connection

_COLUMNS = (
    "id", "seq", "metal", "tier", "amount", "target_price", "quantity",
    "status", "created_date", "filled_date", "filled_price",
)


def _row_to_order(row: sqlite3.Row) -> LimitOrder:
    data = dict(row)
    data.pop("seq", None)
    return LimitOrder(**data)


class OrderRepo:
    """Data access layer for limit orders.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def insert_many(self, orders: list[LimitOrder]) -> list[LimitOrder]:
        """Insert *orders* in the given order; returns them with ids assigned."""
        stored = [o if o.id else replace(o, id=uuid.uuid4().hex) for o in orders]
        conn = get_connection(self._db_path)
        try:
            for order in stored:
                self._insert(conn, order)
            conn.commit()
            return stored
        finally:
            conn.close()

    def save(self, order: LimitOrder) -> None:
        """Persist the lifecycle fields of an existing order."""
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                UPDATE limit_orders
                SET status = ?, filled_date = ?, filled_price = ?
                WHERE id = ?
                """,
                (order.status, order.filled_date, order.filled_price, order.id),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, order_id: str) -> bool:
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute("DELETE FROM limit_orders WHERE id = ?", (order_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    @classmethod
    def replace_rows(cls, conn: sqlite3.Connection, orders: list[LimitOrder]) -> None:
        """Replace the table contents on *conn* without committing."""
        conn.execute("DELETE FROM limit_orders")
        for order in orders:
            cls._insert(conn, order if order.id else replace(order, id=uuid.uuid4().hex))

    def get(self, order_id: str) -> Optional[LimitOrder]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM limit_orders WHERE id = ?", (order_id,)
            ).fetchone()
            return _row_to_order(row) if row else None
        finally:
            conn.close()

    def list_orders(self, status_filter: Optional[str] = None) -> list[LimitOrder]:
        """Orders in creation order, optionally filtered by status."""
        conn = get_connection(self._db_path)
        try:
            if status_filter:
                rows = conn.execute(
                    "SELECT * FROM limit_orders WHERE status = ? ORDER BY seq ASC",
                    (status_filter,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM limit_orders ORDER BY seq ASC"
                ).fetchall()
            return [_row_to_order(r) for r in rows]
        finally:
            conn.close()

    @staticmethod
    def _insert(conn: sqlite3.Connection, order: LimitOrder) -> None:
        seq = conn.execute(
            "SELECT COALESCE(MAX(seq), 0) + 1 FROM limit_orders"
        ).fetchone()[0]
        values = {**asdict(order), "seq": seq}
        conn.execute(
            f"INSERT INTO limit_orders ({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
            tuple(values[c] for c in _COLUMNS),
        )
