"""Settings repository — the single stored strategy configuration."""

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from metalledger.config import strategy_config_from_dict, strategy_config_to_dict
from metalledger.engine.models import StrategyConfig
from metalledger.repos.db import get_connection


class SettingsRepo:
    """Stores one ``StrategyConfig`` snapshot as JSON.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def save(self, config: StrategyConfig) -> None:
        conn = get_connection(self._db_path)
        try:
            self.write(conn, config)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def write(conn: sqlite3.Connection, config: StrategyConfig) -> None:
        """Upsert *config* on *conn* without committing."""
        payload = json.dumps(strategy_config_to_dict(config))
        conn.execute(
            """
            INSERT INTO strategy_config (id, payload, updated_at)
            VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                payload = excluded.payload, updated_at = excluded.updated_at
            """,
            (payload, datetime.now(timezone.utc).isoformat()),
        )

    def load(self) -> Optional[StrategyConfig]:
        """Return the stored config, or ``None`` if none was saved yet."""
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT payload FROM strategy_config WHERE id = 1"
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return strategy_config_from_dict(json.loads(row["payload"]))

    def clear(self) -> None:
        conn = get_connection(self._db_path)
        try:
            self.clear_rows(conn)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def clear_rows(conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM strategy_config")
