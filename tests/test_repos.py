"""Tests for the SQLite repositories and the application data store."""

import json
import sqlite3
from dataclasses import replace
from datetime import date

import pytest

from metalledger.config import default_strategy_config
from metalledger.engine.limit_orders import build_limit_orders, mark_filled
from metalledger.engine.models import PricePoint, Transaction
from metalledger.repos.db import get_connection, init_db
from metalledger.repos.order_repo import OrderRepo
from metalledger.repos.price_repo import PriceRepo
from metalledger.repos.settings_repo import SettingsRepo
from metalledger.repos.store import AppData, AppDataRepository, AppDataStore
from metalledger.repos.transaction_repo import TransactionRepo


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "data" / "test.db")
    init_db(path)
    return path


def _tx(date_, metal="gold", side="buy", qty=10.0, price=500.0):
    return Transaction(
        date=date_, metal=metal, type=side, quantity=qty, price=price, amount=qty * price
    )


def _point(date_, gold=500.0):
    return PricePoint(date=date_, gold_price=gold, silver_price=7.0, platinum_price=220.0)


# ── Schema ───────────────────────────────────────────────────────────────


class TestInitDb:
    def test_creates_tables(self, db_path):
        conn = get_connection(db_path)
        try:
            names = {
                r["name"]
                for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            }
        finally:
            conn.close()
        assert {"transactions", "price_points", "limit_orders", "strategy_config"} <= names

    def test_idempotent(self, db_path):
        TransactionRepo(db_path).insert(_tx("2024-01-01"))
        init_db(db_path)
        assert len(TransactionRepo(db_path).list_transactions()) == 1


# ── Transactions ─────────────────────────────────────────────────────────


class TestTransactionRepo:
    def test_insert_assigns_id(self, db_path):
        tx = TransactionRepo(db_path).insert(_tx("2024-01-01"))
        assert tx.id

    def test_listed_chronologically(self, db_path):
        repo = TransactionRepo(db_path)
        repo.insert(_tx("2024-02-01", price=600))
        repo.insert(_tx("2024-01-01", price=500))
        repo.insert(_tx("2024-02-01", side="sell", qty=5, price=610))
        listed = repo.list_transactions()
        assert [t.date for t in listed] == ["2024-01-01", "2024-02-01", "2024-02-01"]
        # same-day records keep insertion order
        assert [t.type for t in listed] == ["buy", "buy", "sell"]

    def test_update_recomputes_amount(self, db_path):
        repo = TransactionRepo(db_path)
        tx = repo.insert(_tx("2024-01-01"))
        updated = repo.update(tx.id, quantity=4.0)
        assert updated.amount == pytest.approx(2000)
        assert repo.get(tx.id).amount == pytest.approx(2000)

    def test_update_ignores_explicit_amount(self, db_path):
        repo = TransactionRepo(db_path)
        tx = repo.insert(_tx("2024-01-01"))
        updated = repo.update(tx.id, price=510.0, amount=5050.0)
        assert updated.amount == pytest.approx(5_100)
        assert repo.get(tx.id).amount == pytest.approx(5_100)

    def test_update_unknown(self, db_path):
        assert TransactionRepo(db_path).update("missing", quantity=1.0) is None

    def test_delete(self, db_path):
        repo = TransactionRepo(db_path)
        tx = repo.insert(_tx("2024-01-01"))
        assert repo.delete(tx.id) is True
        assert repo.delete(tx.id) is False
        assert repo.list_transactions() == []

    def test_round_trip_fields(self, db_path):
        repo = TransactionRepo(db_path)
        tx = repo.insert(
            Transaction(
                date="2024-01-01", metal="silver", type="buy", quantity=100, price=7,
                amount=700, rsi=42.5, gsr=78.1, platform="bank", notes="first lot",
            )
        )
        assert repo.get(tx.id) == tx


# ── Prices ───────────────────────────────────────────────────────────────


class TestPriceRepo:
    def test_upsert_replaces_same_date(self, db_path):
        repo = PriceRepo(db_path)
        first = repo.upsert(_point("2024-01-01", 500))
        second = repo.upsert(_point("2024-01-01", 505))
        assert second.id == first.id
        series = repo.list_series()
        assert len(series) == 1
        assert series[0].gold_price == 505

    def test_series_ascending_and_limited(self, db_path):
        repo = PriceRepo(db_path)
        for d in ("2024-01-03", "2024-01-01", "2024-01-02"):
            repo.upsert(_point(d))
        assert [p.date for p in repo.list_series()] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert [p.date for p in repo.list_series(limit=2)] == ["2024-01-02", "2024-01-03"]
        assert repo.get_latest().date == "2024-01-03"

    def test_empty(self, db_path):
        assert PriceRepo(db_path).get_latest() is None

    def test_optional_vix(self, db_path):
        repo = PriceRepo(db_path)
        repo.upsert(_point("2024-01-01"))
        assert repo.get_latest().vix is None

    def test_delete(self, db_path):
        repo = PriceRepo(db_path)
        point = repo.upsert(_point("2024-01-01"))
        assert repo.delete(point.id) is True
        assert repo.list_series() == []


# ── Orders ───────────────────────────────────────────────────────────────


class TestOrderRepo:
    def test_insert_and_lifecycle(self, db_path):
        repo = OrderRepo(db_path)
        orders = repo.insert_many(
            build_limit_orders("gold", 10_000, 500, [-1, -2.5, -4, -6], "2024-03-01")
        )
        assert [o.tier for o in repo.list_orders()] == [1, 2, 3, 4]

        repo.save(mark_filled(orders[0], 494.0, "2024-03-02"))
        stored = repo.get(orders[0].id)
        assert stored.status == "filled"
        assert stored.filled_price == 494.0
        assert stored.filled_date == "2024-03-02"

        assert len(repo.list_orders("pending")) == 3
        assert [o.id for o in repo.list_orders("filled")] == [orders[0].id]

    def test_get_unknown(self, db_path):
        assert OrderRepo(db_path).get("missing") is None


# ── Settings ─────────────────────────────────────────────────────────────


class TestSettingsRepo:
    def test_save_and_load(self, db_path):
        repo = SettingsRepo(db_path)
        assert repo.load() is None
        cfg = default_strategy_config(date(2024, 1, 1))
        repo.save(cfg)
        repo.save(cfg)
        assert repo.load() == cfg

    def test_clear(self, db_path):
        repo = SettingsRepo(db_path)
        repo.save(default_strategy_config(date(2024, 1, 1)))
        repo.clear()
        assert repo.load() is None


# ── Store ────────────────────────────────────────────────────────────────


class TestAppDataStore:
    def _populated(self, tmp_path):
        store = AppDataStore(str(tmp_path / "store.db"))
        store.settings.save(default_strategy_config(date(2024, 1, 1)))
        store.transactions.insert(_tx("2024-01-02"))
        store.prices.upsert(_point("2024-01-02"))
        store.orders.insert_many(
            build_limit_orders("gold", 1_000, 500, [-1, -2.5, -4, -6], "2024-01-02")
        )
        return store

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(AppDataStore(str(tmp_path / "s.db")), AppDataRepository)

    def test_load_defaults_when_empty(self, tmp_path):
        data = AppDataStore(str(tmp_path / "s.db")).load()
        assert data.transactions == []
        assert data.price_data == []
        assert data.limit_orders == []
        assert data.config.accumulation_start_date == date.today().isoformat()

    def test_export_import_round_trip(self, tmp_path):
        source = self._populated(tmp_path)
        exported = source.export_json()
        assert json.loads(exported)["config"]["total_capital"] == 100_000

        target = AppDataStore(str(tmp_path / "copy.db"))
        assert target.import_json(exported) is True
        assert target.load() == source.load()

    def test_import_rejects_bad_document(self, tmp_path, caplog):
        store = self._populated(tmp_path)
        before = store.load()
        assert store.import_json("not json") is False
        assert store.import_json(json.dumps({"transactions": [{"bogus": 1}]})) is False
        assert store.import_json("[1, 2]") is False
        copper = {"date": "2024-01-02", "metal": "copper", "type": "buy",
                  "quantity": 1, "price": 5, "amount": 5}
        assert store.import_json(json.dumps({"transactions": [copper]})) is False
        assert store.load() == before
        assert "Error importing data" in caplog.text

    def test_save_replaces_everything(self, tmp_path):
        store = self._populated(tmp_path)
        store.save(AppData(config=default_strategy_config(date(2025, 1, 1))))
        data = store.load()
        assert data.transactions == []
        assert data.limit_orders == []
        assert data.config.accumulation_start_date == "2025-01-01"

    def test_reset(self, tmp_path):
        store = self._populated(tmp_path)
        store.reset()
        assert store.settings.load() is None
        assert store.load().transactions == []
        assert store.load().price_data == []

    def test_import_rejects_out_of_range_tier(self, tmp_path, caplog):
        store = self._populated(tmp_path)
        before = store.load()
        document = json.loads(store.export_json())
        document["limit_orders"][0]["tier"] = 5
        assert store.import_json(json.dumps(document)) is False
        assert store.load() == before
        assert "tier must be 1–4" in caplog.text

    def test_import_rejects_duplicate_ids(self, tmp_path):
        store = self._populated(tmp_path)
        before = store.load()
        document = json.loads(store.export_json())
        document["transactions"].append(dict(document["transactions"][0]))
        assert store.import_json(json.dumps(document)) is False

        document = json.loads(store.export_json())
        document["limit_orders"][1]["id"] = document["limit_orders"][0]["id"]
        assert store.import_json(json.dumps(document)) is False
        assert store.load() == before

    def test_failed_save_leaves_data_untouched(self, tmp_path):
        store = self._populated(tmp_path)
        before = store.load()
        first = before.limit_orders[0]
        broken = AppData(
            config=default_strategy_config(date(2025, 1, 1)),
            transactions=[_tx("2025-01-01")],
            limit_orders=[first, replace(first, tier=2)],
        )
        with pytest.raises(sqlite3.IntegrityError):
            store.save(broken)
        assert store.load() == before
