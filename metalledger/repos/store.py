"""Application data store — whole-dataset load/save/reset/import/export.

Composes the table repositories behind the ``AppDataRepository``
protocol so callers can swap SQLite for another backend.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import asdict, dataclass, field
from typing import Optional, Protocol, runtime_checkable

from metalledger.config import (
    default_strategy_config,
    strategy_config_from_dict,
    strategy_config_to_dict,
)
from metalledger.engine.limit_orders import ORDER_STATUSES, TIER_PERCENTAGES
from metalledger.engine.models import (
    LimitOrder,
    PricePoint,
    StrategyConfig,
    Transaction,
    check_metal,
)
from metalledger.repos.db import get_connection, init_db
from metalledger.repos.order_repo import OrderRepo
from metalledger.repos.price_repo import PriceRepo
from metalledger.repos.settings_repo import SettingsRepo
from metalledger.repos.transaction_repo import TransactionRepo

logger = logging.getLogger("metalledger")


@dataclass
class AppData:
    """Everything the application persists."""

    config: StrategyConfig = field(default_factory=default_strategy_config)
    price_data: list[PricePoint] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    limit_orders: list[LimitOrder] = field(default_factory=list)


@runtime_checkable
class AppDataRepository(Protocol):
    """Persistence boundary used by the API layer."""

    def load(self) -> AppData: ...

    def save(self, data: AppData) -> None: ...


def app_data_to_dict(data: AppData) -> dict:
    return {
        "config": strategy_config_to_dict(data.config),
        "price_data": [asdict(p) for p in data.price_data],
        "transactions": [asdict(t) for t in data.transactions],
        "limit_orders": [asdict(o) for o in data.limit_orders],
    }


def _check_unique_ids(kind: str, records) -> None:
    ids = [r.id for r in records if r.id]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Duplicate {kind} id(s): {', '.join(duplicates)}")


def app_data_from_dict(payload: dict) -> AppData:
    """Rebuild ``AppData`` from its dict form.

    Raises ``ValueError`` (or ``TypeError`` for unexpected record keys)
    when the payload is malformed or breaks a table constraint.
    """
    if not isinstance(payload, dict):
        raise ValueError("App data payload must be a JSON object")
    data = AppData(
        config=strategy_config_from_dict(payload.get("config", {})),
        price_data=[PricePoint(**p) for p in payload.get("price_data", [])],
        transactions=[Transaction(**t) for t in payload.get("transactions", [])],
        limit_orders=[LimitOrder(**o) for o in payload.get("limit_orders", [])],
    )
    for tx in data.transactions:
        check_metal(tx.metal)
        if tx.type not in ("buy", "sell"):
            raise ValueError(f"type must be 'buy' or 'sell', got '{tx.type}'")
    for order in data.limit_orders:
        check_metal(order.metal)
        if order.status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status '{order.status}'")
        if order.tier not in range(1, len(TIER_PERCENTAGES) + 1):
            raise ValueError(
                f"tier must be 1–{len(TIER_PERCENTAGES)}, got {order.tier}"
            )
    _check_unique_ids("price point", data.price_data)
    _check_unique_ids("transaction", data.transactions)
    _check_unique_ids("order", data.limit_orders)
    return data


class AppDataStore:
    """SQLite-backed ``AppDataRepository``.

    Args:
        db_path: Path to the SQLite database file.  The schema is created
            on construction.
    """

    def __init__(self, db_path: str) -> None:
        init_db(db_path)
        self._db_path = db_path
        self.transactions = TransactionRepo(db_path)
        self.prices = PriceRepo(db_path)
        self.orders = OrderRepo(db_path)
        self.settings = SettingsRepo(db_path)

    def strategy_config(self) -> StrategyConfig:
        """Stored strategy config, falling back to today's defaults."""
        return self.settings.load() or default_strategy_config()

    def load(self) -> AppData:
        return AppData(
            config=self.strategy_config(),
            price_data=self.prices.list_series(),
            transactions=self.transactions.list_transactions(),
            limit_orders=self.orders.list_orders(),
        )

    def save(self, data: AppData) -> None:
        """Replace every table in one transaction.

        On any database error nothing is written and the error propagates.
        """
        self._replace(data.config, data)

    def reset(self) -> None:
        """Drop all records and the stored strategy config."""
        self._replace(None, AppData())
        logger.info("Application data reset")

    def _replace(self, config: Optional[StrategyConfig], data: AppData) -> None:
        conn = get_connection(self._db_path)
        try:
            if config is None:
                SettingsRepo.clear_rows(conn)
            else:
                SettingsRepo.write(conn, config)
            PriceRepo.replace_rows(conn, data.price_data)
            TransactionRepo.replace_rows(conn, data.transactions)
            OrderRepo.replace_rows(conn, data.limit_orders)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    def export_json(self) -> str:
        return json.dumps(app_data_to_dict(self.load()), indent=2)

    def import_json(self, text: str) -> bool:
        """Replace all data with an exported JSON document.

        Returns ``False`` (leaving stored data untouched) when the
        document cannot be parsed or violates a table constraint.
        """
        try:
            data = app_data_from_dict(json.loads(text))
            self.save(data)
        except (ValueError, TypeError, sqlite3.Error) as exc:
            logger.error("Error importing data: %s", exc)
            return False
        return True
