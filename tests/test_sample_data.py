"""Tests for the demo data generator and loader."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from metalledger.api.routers import configure_routers
from metalledger.engine.holdings import compute_holdings
from metalledger.main import app
from metalledger.repos.store import AppDataStore
from metalledger.sample_data import SAMPLE_DAYS, generate_sample_data, has_data, load_sample_data

TODAY = date(2024, 3, 31)


class TestGenerateSampleData:
    def test_series_shape(self):
        prices, _ = generate_sample_data(TODAY, seed=1)
        assert len(prices) == SAMPLE_DAYS
        assert prices[0].date == "2024-03-01"
        assert prices[-1].date == "2024-03-30"
        assert [p.date for p in prices] == sorted(p.date for p in prices)

    def test_values_in_plausible_ranges(self):
        prices, _ = generate_sample_data(TODAY, seed=2)
        for p in prices:
            assert 500 <= p.gold_price <= 550
            assert 6.3 <= p.silver_price <= 7.6
            assert 200 <= p.platinum_price <= 238
            assert 30 <= p.gold_rsi <= 70
            assert 15 <= p.vix <= 30

    def test_purchases(self):
        prices, txs = generate_sample_data(TODAY, seed=3)
        assert len(txs) == 5
        assert {t.date for t in txs} == {prices[5].date, prices[15].date}
        first_gold = txs[0]
        assert first_gold.price == prices[5].gold_price
        assert first_gold.amount == pytest.approx(30.5 * prices[5].gold_price)
        assert first_gold.gsr == pytest.approx(prices[5].gold_price / prices[5].silver_price)
        holdings = compute_holdings(txs)
        assert holdings["gold"].quantity == pytest.approx(55.5)
        assert holdings["silver"].quantity == pytest.approx(2700)
        assert holdings["platinum"].quantity == pytest.approx(25)

    def test_seed_reproducible(self):
        assert generate_sample_data(TODAY, seed=9) == generate_sample_data(TODAY, seed=9)


class TestLoadSampleData:
    def test_load_into_store(self, tmp_path):
        store = AppDataStore(str(tmp_path / "sample.db"))
        assert not has_data(store)
        assert load_sample_data(store, today=TODAY, seed=4) == SAMPLE_DAYS
        assert has_data(store)
        data = store.load()
        assert len(data.price_data) == SAMPLE_DAYS
        assert len(data.transactions) == 5

    def test_reload_replaces_prices_for_same_dates(self, tmp_path):
        store = AppDataStore(str(tmp_path / "sample.db"))
        load_sample_data(store, today=TODAY, seed=4)
        load_sample_data(store, today=TODAY, seed=5)
        data = store.load()
        assert len(data.price_data) == SAMPLE_DAYS
        assert len(data.transactions) == 10


class TestSampleEndpoint:
    def test_refuses_non_empty_store(self, tmp_path):
        store = AppDataStore(str(tmp_path / "sample.db"))
        configure_routers(store=store)
        client = TestClient(app)
        try:
            assert client.post("/data/sample").json()["status"] == "ok"
            assert client.post("/data/sample").json()["status"] == "error"
            resp = client.post("/data/sample", params={"force": "true"}).json()
            assert resp == {"status": "ok", "price_points": SAMPLE_DAYS}
        finally:
            configure_routers(store=None)
