"""Price repository — SQLite operations for the price_points table."""

import sqlite3
import uuid
from dataclasses import asdict, replace
from typing import Optional

from metalledger.engine.models import PricePoint
from metalledger.repos.db import get_connection

_COLUMNS = (
    "id", "date", "gold_price", "silver_price", "platinum_price",
    "gold_rsi", "silver_rsi", "platinum_rsi", "vix",
)


class PriceRepo:
    """Data access layer for daily price points (one per date).

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def upsert(self, point: PricePoint) -> PricePoint:
        """Insert *point*, replacing any existing point for the same date."""
        conn = get_connection(self._db_path)
        try:
            existing = conn.execute(
                "SELECT id FROM price_points WHERE date = ?", (point.date,)
            ).fetchone()
            if existing is not None:
                point = replace(point, id=existing["id"])
            elif not point.id:
                point = replace(point, id=uuid.uuid4().hex)
            values = asdict(point)
            conn.execute(
                f"INSERT OR REPLACE INTO price_points ({', '.join(_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
                tuple(values[c] for c in _COLUMNS),
            )
            conn.commit()
            return point
        finally:
            conn.close()

    def delete(self, point_id: str) -> bool:
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute("DELETE FROM price_points WHERE id = ?", (point_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    @staticmethod
    def replace_rows(conn: sqlite3.Connection, points: list[PricePoint]) -> None:
        """Replace the table contents on *conn* without committing."""
        conn.execute("DELETE FROM price_points")
        conn.executemany(
            f"INSERT OR REPLACE INTO price_points ({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
            [
                tuple(asdict(p if p.id else replace(p, id=uuid.uuid4().hex))[c] for c in _COLUMNS)
                for p in points
            ],
        )

    def list_series(self, limit: Optional[int] = None) -> list[PricePoint]:
        """Price points in ascending date order.

        With *limit*, only the most recent *limit* points are returned
        (still ascending).
        """
        conn = get_connection(self._db_path)
        try:
            if limit is None:
                rows = conn.execute(
                    "SELECT * FROM price_points ORDER BY date ASC"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM (SELECT * FROM price_points ORDER BY date DESC LIMIT ?) "
                    "ORDER BY date ASC",
                    (limit,),
                ).fetchall()
            return [PricePoint(**dict(r)) for r in rows]
        finally:
            conn.close()

    def get_latest(self) -> Optional[PricePoint]:
        """Return the most recent price point, or ``None``."""
        series = self.list_series(limit=1)
        return series[0] if series else None
