"""Drift-based rebalancing — pure math, no I/O.

When any metal drifts more than the threshold (percentage points) from its
target allocation, propose selling the most overweight metal and buying
the most underweight one for the same currency amount.  Only two metals
ever trade.
"""

from metalledger.engine.models import (
    METALS,
    Holding,
    RebalanceTrade,
    RebalancingRecommendation,
)
from metalledger.engine.valuation import calculate_allocation, portfolio_value

DEFAULT_THRESHOLD_PCT = 15.0


def calculate_rebalancing(
    holdings: dict[str, Holding],
    gold_price: float,
    silver_price: float,
    platinum_price: float,
    target_allocation: dict[str, float],
    threshold_pct: float = DEFAULT_THRESHOLD_PCT,
) -> RebalancingRecommendation:
    """Compare current against target allocation and propose a trade pair.

    Trade size = |largest positive deviation| / 100 × portfolio value.
    The sell leg starts from gold and the buy leg from silver; a metal
    replaces them only with a strictly larger (or smaller) deviation.

    Returns:
        ``RebalancingRecommendation``; ``sell``/``buy`` are set only when
        ``needed`` is true.
    """
    current = calculate_allocation(holdings, gold_price, silver_price, platinum_price)
    target = {m: float(target_allocation.get(m, 0.0)) for m in METALS}
    deviations = {m: current[m] - target[m] for m in METALS}

    max_deviation = max(abs(d) for d in deviations.values())
    if not max_deviation > threshold_pct:
        return RebalancingRecommendation(
            needed=False,
            current_allocation=current,
            target_allocation=target,
            deviations=deviations,
        )

    overweight, underweight = "gold", "silver"
    max_positive = deviations["gold"]
    max_negative = deviations["silver"]
    for metal in METALS:
        if deviations[metal] > max_positive:
            max_positive = deviations[metal]
            overweight = metal
        if deviations[metal] < max_negative:
            max_negative = deviations[metal]
            underweight = metal

    total = portfolio_value(holdings, gold_price, silver_price, platinum_price)
    amount = abs(max_positive) / 100.0 * total

    prices = {"gold": gold_price, "silver": silver_price, "platinum": platinum_price}

    def _trade(metal: str) -> RebalanceTrade:
        price = prices[metal]
        return RebalanceTrade(
            metal=metal,
            amount=amount,
            quantity=amount / price if price > 0 else 0.0,
        )

    return RebalancingRecommendation(
        needed=True,
        current_allocation=current,
        target_allocation=target,
        deviations=deviations,
        sell=_trade(overweight),
        buy=_trade(underweight),
    )
