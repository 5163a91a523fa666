"""Tiered limit-order generation and order lifecycle transitions.

An allocation is split into four buy orders placed at successively deeper
discounts below the current price.  The split is fixed; the discount per
tier comes from the strategy's spread table.
"""

import uuid
from dataclasses import replace
from typing import Callable, Optional, Sequence

from metalledger.engine.models import LimitOrder, TierProposal, check_metal

# Share of the allocation per tier (tier 1 first).  Tier count and split
# are a single constant; spread tables must provide exactly one spread per
# tier.
TIER_PERCENTAGES: tuple[float, ...] = (0.40, 0.30, 0.20, 0.10)

ORDER_STATUSES = ("pending", "filled", "cancelled")


def generate_limit_orders(
    metal: str,
    allocation: float,
    current_price: float,
    spreads: Sequence[float],
) -> list[TierProposal]:
    """Split *allocation* into four discounted buy tiers.

    For tier *i*::

        amount       = allocation × TIER_PERCENTAGES[i]
        target_price = current_price × (1 + spreads[i] / 100)
        quantity     = amount / target_price

    Args:
        metal: Metal tag (validated, not otherwise used in the math).
        allocation: Currency to deploy across all tiers.
        current_price: Current price per gram.
        spreads: Four percentage offsets, normally negative
            (e.g. ``[-1, -2.5, -4, -6]``).

    Returns:
        Four ``TierProposal`` records.  A non-positive target price yields
        a zero quantity instead of a division error.

    Raises:
        ValueError: If *metal* is unknown or *spreads* does not have one
            entry per tier.
    """
    check_metal(metal)
    if len(spreads) != len(TIER_PERCENTAGES):
        raise ValueError(
            f"Expected {len(TIER_PERCENTAGES)} spreads, got {len(spreads)}"
        )
    proposals: list[TierProposal] = []
    for index, (pct, spread) in enumerate(zip(TIER_PERCENTAGES, spreads)):
        amount = allocation * pct
        target = current_price * (1 + spread / 100.0)
        quantity = amount / target if target > 0 else 0.0
        proposals.append(
            TierProposal(
                tier=index + 1,
                amount=amount,
                target_price=target,
                quantity=quantity,
                percentage=pct * 100.0,
            )
        )
    return proposals


def _new_order_id() -> str:
    return uuid.uuid4().hex


def build_limit_orders(
    metal: str,
    allocation: float,
    current_price: float,
    spreads: Sequence[float],
    created_date: str,
    id_factory: Callable[[], str] = _new_order_id,
) -> list[LimitOrder]:
    """Wrap the tier proposals into pending ``LimitOrder`` records."""
    return [
        LimitOrder(
            metal=metal,
            tier=p.tier,
            amount=p.amount,
            target_price=p.target_price,
            quantity=p.quantity,
            status="pending",
            created_date=created_date,
            id=id_factory(),
        )
        for p in generate_limit_orders(metal, allocation, current_price, spreads)
    ]


# ── Lifecycle ────────────────────────────────────────────────────────────


def mark_filled(
    order: LimitOrder,
    filled_price: float,
    filled_date: str,
) -> LimitOrder:
    """Return a copy of a pending *order* marked as filled.

    Raises:
        ValueError: If the order is not pending or *filled_price* is not
            positive.
    """
    if order.status != "pending":
        raise ValueError(
            f"Only pending orders can be filled; order {order.id} is {order.status}"
        )
    if filled_price <= 0:
        raise ValueError(f"filled_price must be positive, got {filled_price}")
    return replace(
        order, status="filled", filled_price=filled_price, filled_date=filled_date
    )


def cancel_order(order: LimitOrder) -> LimitOrder:
    """Return a copy of a pending *order* marked as cancelled."""
    if order.status != "pending":
        raise ValueError(
            f"Only pending orders can be cancelled; order {order.id} is {order.status}"
        )
    return replace(order, status="cancelled")


def count_by_status(orders: Sequence[LimitOrder], status: Optional[str] = None) -> int:
    """Number of *orders*, optionally restricted to one *status*."""
    if status is None:
        return len(orders)
    return sum(1 for o in orders if o.status == status)
