"""Valuation and allocation — pure math, no I/O."""

from datetime import date
from typing import Optional, Sequence

from metalledger.engine.holdings import compute_holdings, total_invested
from metalledger.engine.models import (
    METALS,
    Holding,
    PortfolioSummary,
    PricePoint,
    StrategyConfig,
    Transaction,
)


def portfolio_value(
    holdings: dict[str, Holding],
    gold_price: float,
    silver_price: float,
    platinum_price: float,
) -> float:
    """Market value of *holdings*: Σ quantity × price over the three metals."""
    return (
        holdings["gold"].quantity * gold_price
        + holdings["silver"].quantity * silver_price
        + holdings["platinum"].quantity * platinum_price
    )


def calculate_allocation(
    holdings: dict[str, Holding],
    gold_price: float,
    silver_price: float,
    platinum_price: float,
) -> dict[str, float]:
    """Percentage of portfolio value held in each metal.

    Returns all zeros when the portfolio is worth nothing.
    """
    total = portfolio_value(holdings, gold_price, silver_price, platinum_price)
    if total == 0:
        return {m: 0.0 for m in METALS}

    prices = {"gold": gold_price, "silver": silver_price, "platinum": platinum_price}
    return {
        m: holdings[m].quantity * prices[m] / total * 100.0
        for m in METALS
    }


def gold_silver_ratio(gold_price: float, silver_price: float) -> float:
    """Gold price divided by silver price, or 0 when silver is unpriced."""
    return gold_price / silver_price if silver_price > 0 else 0.0


def days_between(start: str, end: str) -> int:
    """Absolute number of calendar days between two ISO dates."""
    return abs((date.fromisoformat(end) - date.fromisoformat(start)).days)


def portfolio_summary(
    transactions: Sequence[Transaction],
    price_series: Sequence[PricePoint],
    config: StrategyConfig,
    today: Optional[str] = None,
) -> PortfolioSummary:
    """Headline dashboard figures at the latest price point.

    Args:
        transactions: Full transaction history, chronological.
        price_series: Price points in ascending date order.  When empty,
            every market-dependent figure is 0.
        config: Strategy configuration (capital target, end date).
        today: ISO date used for the countdown.  Defaults to the system date.
    """
    holdings = compute_holdings(transactions)
    invested = total_invested(transactions)

    if price_series:
        latest = price_series[-1]
        value = portfolio_value(
            holdings, latest.gold_price, latest.silver_price, latest.platinum_price
        )
        allocation = calculate_allocation(
            holdings, latest.gold_price, latest.silver_price, latest.platinum_price
        )
        gsr = gold_silver_ratio(latest.gold_price, latest.silver_price)
    else:
        value = 0.0
        allocation = {m: 0.0 for m in METALS}
        gsr = 0.0

    gain = value - invested
    gain_pct = gain / invested * 100.0 if invested > 0 else 0.0
    progress = (
        invested / config.total_capital * 100.0 if config.total_capital else 0.0
    )

    days_remaining = 0
    if config.accumulation_end_date:
        days_remaining = days_between(
            today or date.today().isoformat(), config.accumulation_end_date
        )

    return PortfolioSummary(
        current_value=value,
        total_invested=invested,
        unrealized_gain=gain,
        unrealized_gain_pct=gain_pct,
        target_progress_pct=progress,
        days_remaining=days_remaining,
        gold_silver_ratio=gsr,
        allocation=allocation,
    )
