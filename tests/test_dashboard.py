"""Tests for the console summary and CLI wiring."""

import pytest

from metalledger.cli.dashboard import print_summary
from metalledger.engine.models import Holding, PortfolioSummary, StopLossStatus
from metalledger.main import _run_cli


def _summary():
    return PortfolioSummary(
        current_value=5500.0,
        total_invested=5000.0,
        unrealized_gain=500.0,
        unrealized_gain_pct=10.0,
        target_progress_pct=5.0,
        days_remaining=175,
        gold_silver_ratio=80.0,
        allocation={"gold": 100.0, "silver": 0.0, "platinum": 0.0},
    )


def _holdings():
    return {
        "gold": Holding(quantity=10, average_cost=500, total_cost=5000),
        "silver": Holding(),
        "platinum": Holding(),
    }


class TestPrintSummary:
    def test_headline_figures(self, capsys):
        output = print_summary(_summary(), _holdings())
        assert "¥5,500.00" in output
        assert "(10.00%)" in output
        assert "Days remaining:  175" in output
        assert "Gold/Silver:     80.00" in output
        assert capsys.readouterr().out.strip() == output.strip()

    def test_stop_status_per_metal(self):
        stop = StopLossStatus(
            metal="gold", current_price=550, average_cost=500, dynamic_stop_loss=490,
            hard_stop_loss=375, distance_from_stop=10.9, status="safe",
        )
        output = print_summary(_summary(), _holdings(), [stop], currency="$")
        gold_line = next(line for line in output.splitlines() if "Gold " in line)
        assert "stop: safe" in gold_line
        assert "$500.00" in gold_line
        silver_line = next(line for line in output.splitlines() if "Silver " in line)
        assert "stop:" not in silver_line


@pytest.fixture
def _clean_env(monkeypatch, tmp_path):
    for var in ["DB_PATH", "LOG_LEVEL", "API_PORT", "STRATEGY_CONFIG_PATH"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DB_PATH", str(tmp_path / "cli.db"))


class TestCli:
    def test_summary_command(self, _clean_env, tmp_path, capsys):
        _run_cli(["summary", "--env", str(tmp_path / "nonexistent.env")])
        out = capsys.readouterr().out
        assert "MetalLedger Portfolio" in out
        assert "Value:           ¥0.00" in out

    def test_serve_command_starts_server(self, _clean_env, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr("metalledger.main._serve", lambda port: calls.append(port))
        monkeypatch.setenv("API_PORT", "9123")
        _run_cli(["serve", "--env", str(tmp_path / "nonexistent.env")])
        assert calls == [9123]
