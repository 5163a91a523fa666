"""Technical indicators — Wilder RSI from a closing-price series. Pure functions, no I/O."""

import math
from typing import Sequence

from metalledger.engine.models import METALS, PricePoint

RSI_PERIOD = 14
NEUTRAL_RSI = 50.0


def calculate_rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> list[float]:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RS = avg_gain / avg_loss
        6. RSI = 100 - 100 / (1 + RS)

    Requires at least ``period + 1`` closes.

    Returns a list the same length as *closes*.  Entries before the
    seed period are ``float('nan')``.
    """
    if len(closes) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} prices for RSI({period}), "
            f"got {len(closes)}"
        )

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    rsi: list[float] = [float("nan")] * len(closes)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0 if ag > 0 else NEUTRAL_RSI
        rs = ag / al
        return 100.0 - 100.0 / (1.0 + rs)

    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # deltas are offset by one against closes
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


def latest_rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """Most recent RSI value, or a neutral 50.0 with insufficient history."""
    if len(closes) < period + 1:
        return NEUTRAL_RSI
    value = calculate_rsi(closes, period)[-1]
    return NEUTRAL_RSI if math.isnan(value) else value


def rsi_for_metals(
    price_series: Sequence[PricePoint],
    period: int = RSI_PERIOD,
) -> dict[str, float]:
    """Latest RSI of each metal computed from the stored price series."""
    return {
        metal: latest_rsi([p.price(metal) for p in price_series], period)
        for metal in METALS
    }
