"""Performance analytics — pure functions over value and order histories."""

from typing import Sequence

import numpy as np

from metalledger.engine.holdings import compute_holdings, holdings_as_of, total_invested
from metalledger.engine.limit_orders import count_by_status
from metalledger.engine.models import (
    METALS,
    Holding,
    LimitOrder,
    MonthlyReport,
    PerformanceSummary,
    PricePoint,
    Transaction,
)
from metalledger.engine.valuation import portfolio_value

DEFAULT_RISK_FREE_RATE = 0.02


def sharpe_ratio(
    returns: Sequence[float],
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
) -> float:
    """(mean − risk-free) / population std of *returns*.

    Returns 0.0 for an empty series or zero dispersion.
    """
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    std = float(np.std(arr))
    if std == 0:
        return 0.0
    return (float(np.mean(arr)) - risk_free_rate) / std


def max_drawdown(values: Sequence[float]) -> float:
    """Largest peak-to-trough decline of *values*, as a percentage.

    The peak starts at the first value.  Non-positive peaks contribute no
    drawdown, and a fall below zero counts as a total (100 %) loss.
    """
    if not values:
        return 0.0
    peak = values[0]
    max_dd = 0.0
    for v in values:
        if v > peak:
            peak = v
        if peak <= 0:
            continue
        dd = min((peak - v) / peak, 1.0)
        if dd > max_dd:
            max_dd = dd
    return max_dd * 100.0


def fill_rate(total_orders: int, filled_orders: int) -> float:
    """Percentage of orders filled; 0 when there are no orders."""
    return filled_orders / total_orders * 100.0 if total_orders > 0 else 0.0


# ── Grading ──────────────────────────────────────────────────────────────


def grade_score(fill_rate_pct: float, return_pct: float, cost_vs_market_pct: float) -> int:
    """Weighted 0–100 score.

    Fill rate (≤ 40 pts), return (≤ 40 pts), and cost efficiency versus
    the market (≤ 20 pts; negative means bought below market).
    """
    score = 0

    if fill_rate_pct >= 80:
        score += 40
    elif fill_rate_pct >= 60:
        score += 30
    elif fill_rate_pct >= 40:
        score += 20
    else:
        score += 10

    if return_pct >= 10:
        score += 40
    elif return_pct >= 5:
        score += 30
    elif return_pct >= 0:
        score += 20
    else:
        score += 10

    if cost_vs_market_pct <= -5:
        score += 20
    elif cost_vs_market_pct <= -2:
        score += 15
    elif cost_vs_market_pct <= 0:
        score += 10
    else:
        score += 5

    return score


def calculate_grade(fill_rate_pct: float, return_pct: float, cost_vs_market_pct: float) -> str:
    """Letter grade: A (score ≥ 80), B (≥ 60), otherwise C."""
    score = grade_score(fill_rate_pct, return_pct, cost_vs_market_pct)
    if score >= 80:
        return "A"
    if score >= 60:
        return "B"
    return "C"


# ── Series ───────────────────────────────────────────────────────────────


def portfolio_value_series(
    holdings: dict[str, Holding],
    price_series: Sequence[PricePoint],
) -> list[float]:
    """Value of fixed *holdings* at every point of *price_series*."""
    return [
        portfolio_value(holdings, p.gold_price, p.silver_price, p.platinum_price)
        for p in price_series
    ]


def period_returns(values: Sequence[float]) -> list[float]:
    """Simple returns between consecutive values (0 where the prior is 0)."""
    return [
        (values[i] - values[i - 1]) / values[i - 1] if values[i - 1] != 0 else 0.0
        for i in range(1, len(values))
    ]


def performance_summary(
    transactions: Sequence[Transaction],
    price_series: Sequence[PricePoint],
    orders: Sequence[LimitOrder] = (),
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
) -> PerformanceSummary:
    """Return, drawdown, Sharpe and fill-rate figures for the report view.

    Drawdown and Sharpe are measured on the current holdings valued across
    the whole price history.
    """
    holdings = compute_holdings(transactions)
    invested = total_invested(transactions)
    values = portfolio_value_series(holdings, price_series)
    current = values[-1] if values else 0.0

    return PerformanceSummary(
        total_invested=invested,
        current_value=current,
        total_return_pct=(current - invested) / invested * 100.0 if invested > 0 else 0.0,
        max_drawdown_pct=max_drawdown(values),
        sharpe_ratio=sharpe_ratio(period_returns(values), risk_free_rate),
        fill_rate=fill_rate(count_by_status(orders), count_by_status(orders, "filled")),
    )


def _cost_vs_market(
    buys: Sequence[Transaction],
    month_prices: Sequence[PricePoint],
) -> float:
    """Amount-weighted % gap between buy prices and the month's mean price."""
    if not buys or not month_prices:
        return 0.0
    mean_price = {
        m: sum(p.price(m) for p in month_prices) / len(month_prices) for m in METALS
    }
    weighted = 0.0
    weight = 0.0
    for tx in buys:
        market = mean_price[tx.metal]
        if market <= 0:
            continue
        weighted += (tx.price / market - 1) * 100.0 * tx.amount
        weight += tx.amount
    return weighted / weight if weight > 0 else 0.0


def build_monthly_report(
    month: str,
    transactions: Sequence[Transaction],
    price_series: Sequence[PricePoint],
    orders: Sequence[LimitOrder] = (),
    notes: str = "",
) -> MonthlyReport:
    """Summarise activity and performance for a ``YYYY-MM`` *month*.

    Start value: holdings before the month's first price point, valued at
    it.  End value: holdings through the last price point, valued at it.
    Monthly return nets out the capital added during the month.
    """
    month_txs = [tx for tx in transactions if tx.date[:7] == month]
    month_prices = [p for p in price_series if p.date[:7] == month]
    month_orders = [o for o in orders if o.created_date[:7] == month]

    invested = total_invested(month_txs)

    start_value = end_value = 0.0
    if month_prices:
        first, last = month_prices[0], month_prices[-1]
        before = [tx for tx in transactions if tx.date < first.date]
        start_value = portfolio_value(
            compute_holdings(before),
            first.gold_price, first.silver_price, first.platinum_price,
        )
        end_value = portfolio_value(
            holdings_as_of(transactions, last.date),
            last.gold_price, last.silver_price, last.platinum_price,
        )

    base = start_value + invested
    monthly_return = (end_value - start_value - invested) / base * 100.0 if base > 0 else 0.0

    placed = len(month_orders)
    filled = count_by_status(month_orders, "filled")
    rate = fill_rate(placed, filled)
    cost_gap = _cost_vs_market(
        [tx for tx in month_txs if tx.type == "buy"], month_prices
    )

    return MonthlyReport(
        month=month,
        invested=invested,
        portfolio_value_start=start_value,
        portfolio_value_end=end_value,
        monthly_return=monthly_return,
        fill_rate=rate,
        avg_cost_vs_market=cost_gap,
        orders_placed=placed,
        orders_filled=filled,
        grade=calculate_grade(rate, monthly_return, cost_gap),
        notes=notes,
    )
