"""Volatility and stop-loss monitoring — pure math, no I/O.

Dynamic stop:   average_cost − volatility × volatility_multiplier × 20
Hard stop:      average_cost × (1 + hard_stop_percent / 100)
Trailing stop:  peak_price × (1 + trailing_stop_percent / 100)

Status uses whichever of the dynamic or hard stop is closer to the
current price: < 5 % away is ``danger``, < 10 % is ``warning``.
"""

import math
from typing import Optional, Sequence

import numpy as np

from metalledger.engine.models import (
    Holding,
    PricePoint,
    StopLossParameters,
    StopLossStatus,
)

TRADING_DAYS_PER_YEAR = 252

# Assumed lookback window (trading days) baked into the dynamic stop.
DYNAMIC_STOP_SCALE = 20

VOLATILITY_WINDOW = 30

DANGER_DISTANCE_PCT = 5.0
WARNING_DISTANCE_PCT = 10.0


def daily_returns(prices: Sequence[float]) -> list[float]:
    """Simple returns between consecutive prices (0 where the prior is 0)."""
    return [
        (prices[i] - prices[i - 1]) / prices[i - 1] if prices[i - 1] != 0 else 0.0
        for i in range(1, len(prices))
    ]


def calculate_volatility(prices: Sequence[float]) -> float:
    """Annualised historical volatility of a price series.

    Population standard deviation of daily returns × √252.  Returns 0.0
    with fewer than two prices.
    """
    if len(prices) < 2:
        return 0.0
    returns = np.asarray(daily_returns(prices), dtype=float)
    return float(np.std(returns)) * math.sqrt(TRADING_DAYS_PER_YEAR)


def recent_volatility(
    price_series: Sequence[PricePoint],
    metal: str,
    window: int = VOLATILITY_WINDOW,
) -> float:
    """Volatility of *metal* over the last *window* price points."""
    recent = price_series[-window:]
    return calculate_volatility([p.price(metal) for p in recent])


def dynamic_stop_loss(
    average_cost: float,
    volatility: float,
    params: StopLossParameters,
) -> float:
    return average_cost - (
        volatility * params.volatility_multiplier * DYNAMIC_STOP_SCALE
    )


def hard_stop_loss(average_cost: float, params: StopLossParameters) -> float:
    return average_cost * (1 + params.hard_stop_percent / 100.0)


def trailing_stop_loss(peak_price: float, params: StopLossParameters) -> float:
    return peak_price * (1 + params.trailing_stop_percent / 100.0)


def _distance_pct(current_price: float, stop: float) -> float:
    if current_price == 0:
        return 0.0
    return (current_price - stop) / current_price * 100.0


def classify_distance(distance_pct: float) -> str:
    """Map a distance-to-stop percentage onto safe / warning / danger."""
    if distance_pct < DANGER_DISTANCE_PCT:
        return "danger"
    if distance_pct < WARNING_DISTANCE_PCT:
        return "warning"
    return "safe"


def stop_loss_status(
    metal: str,
    holdings: dict[str, Holding],
    current_price: float,
    volatility: float,
    params: StopLossParameters,
    peak_price: Optional[float] = None,
) -> StopLossStatus:
    """Compute stop levels for one metal and classify breach proximity.

    Args:
        metal: Metal tag.
        holdings: Current holdings from ``compute_holdings``.
        current_price: Latest price per gram.
        volatility: Annualised volatility (e.g. from ``recent_volatility``).
        params: Stop-loss parameters of the strategy.
        peak_price: Highest recent price.  When given, the trailing stop
            is reported; it does not affect the status.
    """
    holding = holdings[metal]
    dynamic = dynamic_stop_loss(holding.average_cost, volatility, params)
    hard = hard_stop_loss(holding.average_cost, params)

    distance = min(
        _distance_pct(current_price, dynamic),
        _distance_pct(current_price, hard),
    )

    return StopLossStatus(
        metal=metal,
        current_price=current_price,
        average_cost=holding.average_cost,
        dynamic_stop_loss=dynamic,
        hard_stop_loss=hard,
        distance_from_stop=distance,
        status=classify_distance(distance),
        trailing_stop_loss=(
            trailing_stop_loss(peak_price, params) if peak_price is not None else None
        ),
    )


def monitor_stop_losses(
    holdings: dict[str, Holding],
    price_series: Sequence[PricePoint],
    params: StopLossParameters,
    window: int = VOLATILITY_WINDOW,
) -> list[StopLossStatus]:
    """Stop-loss status for every metal with a position.

    Uses the latest price point as the current price, the *window*-day
    volatility, and the window's highest price as the trailing-stop peak.
    Returns an empty list when there are no prices.
    """
    if not price_series:
        return []
    latest = price_series[-1]
    recent = price_series[-window:]
    statuses = []
    for metal, holding in holdings.items():
        if holding.quantity <= 0:
            continue
        statuses.append(
            stop_loss_status(
                metal,
                holdings,
                latest.price(metal),
                recent_volatility(price_series, metal, window),
                params,
                peak_price=max(p.price(metal) for p in recent),
            )
        )
    return statuses
