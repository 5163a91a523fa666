"""Investment planner — value averaging with RSI and GSR adjustments.

Pure functions, no I/O.

Monthly contribution:
    target     = min(total_capital, months_elapsed / 6 × total_capital)
    required   = max(0, target − current portfolio value)
    base[m]    = required × target_allocation[m] / 100
    final[m]   = base[m] × rsi_multiplier(rsi[m])
    If the gold-silver ratio flags a rebalance, capital left unused by the
    RSI dampening is redirected to the flagged metal.
"""

from datetime import date

from metalledger.engine.models import (
    METALS,
    GSRParameters,
    GSRRebalancing,
    Holding,
    MonthlyInvestmentCalculation,
    PricePoint,
    RSIThresholds,
    StrategyConfig,
)
from metalledger.engine.valuation import gold_silver_ratio, portfolio_value

# Length of the linear accumulation schedule.
ACCUMULATION_MONTHS = 6


def months_elapsed(start_date: str, current_date: str) -> int:
    """Whole calendar months from *start_date* to *current_date*.

    Uses year × 12 + month arithmetic, so the day of month is ignored
    (Jan 31 → Feb 1 counts as one month).  Negative when *current_date*
    precedes the start; 0 when no start date is configured.
    """
    if not start_date:
        return 0
    start = date.fromisoformat(start_date)
    current = date.fromisoformat(current_date)
    return (current.year - start.year) * 12 + (current.month - start.month)


def target_value(start_date: str, current_date: str, total_capital: float) -> float:
    """Portfolio value the linear schedule expects by *current_date*."""
    months = months_elapsed(start_date, current_date)
    return min(months / ACCUMULATION_MONTHS * total_capital, total_capital)


def value_averaging_investment(target: float, current_value: float) -> float:
    """Contribution needed to reach *target*; never negative."""
    return max(0.0, target - current_value)


def rsi_multiplier(rsi: float, thresholds: RSIThresholds) -> float:
    """Allocation multiplier for an RSI reading.

    ==========================  ==========
    RSI                         multiplier
    ==========================  ==========
    > pause                     0    (overbought, pause)
    > reduce and ≤ pause        0.5
    ≥ normal and ≤ reduce       1.0
    < normal                    1.5  (oversold, buy harder)
    ==========================  ==========
    """
    if rsi > thresholds.pause:
        return 0.0
    if rsi > thresholds.reduce:
        return 0.5
    if rsi >= thresholds.normal:
        return 1.0
    return 1.5


def gsr_rebalancing(gsr: float, params: GSRParameters) -> GSRRebalancing:
    """Flag a gold↔silver tilt when the ratio leaves its normal band.

    A high ratio means silver is cheap relative to gold, so new capital
    tilts toward silver; a low ratio tilts toward gold.
    """
    if gsr > params.silver_cheap:
        return GSRRebalancing(needed=True, from_metal="gold", to_metal="silver")
    if gsr < params.gold_cheap:
        return GSRRebalancing(needed=True, from_metal="silver", to_metal="gold")
    return GSRRebalancing(needed=False)


def calculate_monthly_investment(
    current_date: str,
    config: StrategyConfig,
    holdings: dict[str, Holding],
    latest_prices: PricePoint,
) -> MonthlyInvestmentCalculation:
    """Build the value-averaging contribution plan for *current_date*.

    Args:
        current_date: ISO date of the planning day.
        config: Strategy configuration snapshot.
        holdings: Current holdings from ``compute_holdings``.
        latest_prices: Most recent price point (prices and RSI readings).

    Returns:
        ``MonthlyInvestmentCalculation`` with the per-metal final
        allocation in currency.
    """
    target = target_value(
        config.accumulation_start_date, current_date, config.total_capital
    )
    current_value = portfolio_value(
        holdings,
        latest_prices.gold_price,
        latest_prices.silver_price,
        latest_prices.platinum_price,
    )
    required = value_averaging_investment(target, current_value)

    rsi_adjustments = {
        m: rsi_multiplier(latest_prices.rsi(m), config.rsi_thresholds)
        for m in METALS
    }

    allocation = {
        m: required * (config.target_allocation.get(m, 0.0) / 100.0) * rsi_adjustments[m]
        for m in METALS
    }

    gsr = gold_silver_ratio(latest_prices.gold_price, latest_prices.silver_price)
    rebalancing = gsr_rebalancing(gsr, config.gsr_parameters)

    if rebalancing.needed:
        unused = required - sum(allocation.values())
        allocation[rebalancing.to_metal] += unused
        rebalancing = GSRRebalancing(
            needed=True,
            from_metal=rebalancing.from_metal,
            to_metal=rebalancing.to_metal,
            amount=unused,
        )

    return MonthlyInvestmentCalculation(
        month=current_date[:7],
        target_value=target,
        current_value=current_value,
        required_investment=required,
        rsi_adjustments=rsi_adjustments,
        gsr_rebalancing=rebalancing,
        final_allocation=allocation,
    )
