"""MetalLedger — application configuration.

Loads .env variables into a typed config object, and converts strategy
configuration snapshots to and from plain dicts (JSON files, API bodies,
the settings table).
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Optional

from dotenv import load_dotenv

from metalledger.engine.limit_orders import TIER_PERCENTAGES
from metalledger.engine.models import (
    METALS,
    GSRParameters,
    RSIThresholds,
    StopLossParameters,
    StrategyConfig,
)

logger = logging.getLogger("metalledger")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    db_path: str
    log_level: str
    api_port: int
    risk_free_rate: float
    rebalance_threshold_pct: float
    strategy_config_path: Optional[str] = None


def _env_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Environment variable {name} must be a number, got '{raw}'"
        ) from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a numeric variable
    cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    return Config(
        db_path=os.environ.get("DB_PATH", "data/metalledger.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_env_number("API_PORT", "8080", int),
        risk_free_rate=_env_number("RISK_FREE_RATE", "0.02", float),
        rebalance_threshold_pct=_env_number("REBALANCE_THRESHOLD_PCT", "15.0", float),
        strategy_config_path=os.environ.get("STRATEGY_CONFIG_PATH") or None,
    )


# ── Strategy configuration ───────────────────────────────────────────────


def default_strategy_config(today: date | None = None) -> StrategyConfig:
    """Strategy defaults anchored at *today*.

    Accumulation runs for 180 days from today; the holding period ends
    three years out.
    """
    today = today or date.today()
    return StrategyConfig(
        accumulation_start_date=today.isoformat(),
        accumulation_end_date=(today + timedelta(days=180)).isoformat(),
        holding_period_end_date=(today + timedelta(days=3 * 365)).isoformat(),
    )


def strategy_config_from_dict(
    data: dict,
    base: StrategyConfig | None = None,
) -> StrategyConfig:
    """Build a ``StrategyConfig`` from a snake_case dict.

    Keys missing from *data* keep their value from *base* (defaults to
    ``default_strategy_config()``).  Nested sections may be partial.

    Raises:
        ValueError: On non-numeric values or a spread list whose length
            differs from the number of order tiers.
    """
    base = base or default_strategy_config()
    try:
        allocation = dict(base.target_allocation)
        allocation.update(
            {m: float(v) for m, v in data.get("target_allocation", {}).items()}
        )

        spreads = dict(base.limit_order_spreads)
        for metal, values in data.get("limit_order_spreads", {}).items():
            values = tuple(float(v) for v in values)
            if len(values) != len(TIER_PERCENTAGES):
                raise ValueError(
                    f"limit_order_spreads.{metal} must have "
                    f"{len(TIER_PERCENTAGES)} values, got {len(values)}"
                )
            spreads[metal] = values

        unknown = (set(allocation) | set(spreads)) - set(METALS)
        if unknown:
            raise ValueError(f"Unknown metal(s) in strategy config: {', '.join(sorted(unknown))}")

        rsi = {**asdict(base.rsi_thresholds), **data.get("rsi_thresholds", {})}
        gsr = {**asdict(base.gsr_parameters), **data.get("gsr_parameters", {})}
        stop = {**asdict(base.stop_loss_parameters), **data.get("stop_loss_parameters", {})}

        config = StrategyConfig(
            total_capital=float(data.get("total_capital", base.total_capital)),
            accumulation_start_date=str(
                data.get("accumulation_start_date", base.accumulation_start_date)
            ),
            accumulation_end_date=str(
                data.get("accumulation_end_date", base.accumulation_end_date)
            ),
            holding_period_end_date=str(
                data.get("holding_period_end_date", base.holding_period_end_date)
            ),
            active_capital_percent=float(
                data.get("active_capital_percent", base.active_capital_percent)
            ),
            opportunity_capital_percent=float(
                data.get("opportunity_capital_percent", base.opportunity_capital_percent)
            ),
            target_allocation=allocation,
            limit_order_spreads=spreads,
            rsi_thresholds=RSIThresholds(**{k: float(v) for k, v in rsi.items()}),
            gsr_parameters=GSRParameters(**{k: float(v) for k, v in gsr.items()}),
            stop_loss_parameters=StopLossParameters(
                **{k: float(v) for k, v in stop.items()}
            ),
        )
    except TypeError as exc:
        # Unexpected keys inside a nested section
        raise ValueError(f"Invalid strategy config: {exc}") from None

    total_alloc = sum(config.target_allocation.values())
    if abs(total_alloc - 100.0) > 1e-6:
        logger.warning("Target allocation sums to %.2f%%, not 100%%", total_alloc)

    return config


def strategy_config_to_dict(config: StrategyConfig) -> dict:
    """Plain-dict (JSON-ready) form of *config*."""
    data = asdict(config)
    data["limit_order_spreads"] = {
        m: list(v) for m, v in config.limit_order_spreads.items()
    }
    return data


def load_strategy_config(path: str | None) -> StrategyConfig:
    """Read a strategy config JSON file, or return defaults when *path* is empty."""
    if not path:
        return default_strategy_config()
    with open(path, "r", encoding="utf-8") as f:
        return strategy_config_from_dict(json.load(f))
