"""Transaction repository — SQLite CRUD for the transactions table."""

import sqlite3
import uuid
from dataclasses import asdict, replace
from typing import Optional

from metalledger.engine.models import Transaction
from metalledger.repos.db import get_connection

_COLUMNS = (
    "id", "seq", "date", "metal", "type", "quantity", "price", "amount",
    "rsi", "gsr", "platform", "notes",
)


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    data = dict(row)
    data.pop("seq", None)
    return Transaction(**data)


class TransactionRepo:
    """Data access layer for buy/sell transactions.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def insert(self, tx: Transaction) -> Transaction:
        """Insert *tx* and return it with its ``id`` assigned."""
        if not tx.id:
            tx = replace(tx, id=uuid.uuid4().hex)
        conn = get_connection(self._db_path)
        try:
            self._insert(conn, tx)
            conn.commit()
            return tx
        finally:
            conn.close()

    def update(self, tx_id: str, **fields) -> Optional[Transaction]:
        """Update fields of an existing transaction.

        ``amount`` is always recomputed as quantity × price.  Returns the
        updated record, or ``None`` if *tx_id* is unknown.
        """
        current = self.get(tx_id)
        if current is None:
            return None
        fields.pop("id", None)
        fields.pop("amount", None)
        updated = replace(current, **fields)
        updated = replace(updated, amount=updated.quantity * updated.price)

        conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                UPDATE transactions
                SET date = ?, metal = ?, type = ?, quantity = ?, price = ?,
                    amount = ?, rsi = ?, gsr = ?, platform = ?, notes = ?
                WHERE id = ?
                """,
                (
                    updated.date, updated.metal, updated.type, updated.quantity,
                    updated.price, updated.amount, updated.rsi, updated.gsr,
                    updated.platform, updated.notes, tx_id,
                ),
            )
            conn.commit()
            return updated
        finally:
            conn.close()

    def delete(self, tx_id: str) -> bool:
        """Delete a transaction.  Returns ``False`` if it did not exist."""
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute("DELETE FROM transactions WHERE id = ?", (tx_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    @classmethod
    def replace_rows(cls, conn: sqlite3.Connection, transactions: list[Transaction]) -> None:
        """Replace the whole table on *conn* without committing.

        The given order becomes the insertion order.
        """
        conn.execute("DELETE FROM transactions")
        for tx in transactions:
            cls._insert(conn, tx if tx.id else replace(tx, id=uuid.uuid4().hex))

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, tx_id: str) -> Optional[Transaction]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM transactions WHERE id = ?", (tx_id,)
            ).fetchone()
            return _row_to_transaction(row) if row else None
        finally:
            conn.close()

    def list_transactions(self) -> list[Transaction]:
        """All transactions in chronological order (insertion order within a day)."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM transactions ORDER BY date ASC, seq ASC"
            ).fetchall()
            return [_row_to_transaction(r) for r in rows]
        finally:
            conn.close()

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _insert(conn: sqlite3.Connection, tx: Transaction) -> None:
        seq = conn.execute(
            "SELECT COALESCE(MAX(seq), 0) + 1 FROM transactions"
        ).fetchone()[0]
        values = {**asdict(tx), "seq": seq}
        conn.execute(
            f"INSERT INTO transactions ({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
            tuple(values[c] for c in _COLUMNS),
        )
