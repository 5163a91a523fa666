"""Holdings aggregation — pure fold over the transaction history, no I/O.

Average-cost-basis accounting: a sell removes cost basis in proportion to
the fraction of the position sold.  Holdings are rebuilt from scratch on
every call; there is no cached position state.
"""

import logging
from typing import Iterable

from metalledger.engine.models import METALS, Holding, Transaction, check_metal

logger = logging.getLogger("metalledger")


def compute_holdings(transactions: Iterable[Transaction]) -> dict[str, Holding]:
    """Fold *transactions* (in the given order) into per-metal holdings.

    Callers must supply the history in chronological order for the cost
    averaging to be economically meaningful.

    Over-selling is clamped: a sell larger than the current position
    closes it out (quantity and cost basis drop to zero), and a sell
    against an empty position is ignored.  Both cases log a warning.

    Returns:
        Dict keyed by every metal tag, each mapped to a ``Holding``.
    """
    state = {m: [0.0, 0.0] for m in METALS}  # [quantity, total_cost]

    for tx in transactions:
        position = state[check_metal(tx.metal)]
        quantity, total_cost = position

        if tx.type == "buy":
            total_cost += tx.amount
            quantity += tx.quantity
        elif tx.type == "sell":
            if quantity <= 0:
                logger.warning(
                    "Ignoring sell of %.4fg %s on %s: no position held",
                    tx.quantity, tx.metal, tx.date,
                )
                continue
            if tx.quantity >= quantity:
                if tx.quantity > quantity:
                    logger.warning(
                        "Sell of %.4fg %s on %s exceeds holding of %.4fg; "
                        "closing position",
                        tx.quantity, tx.metal, tx.date, quantity,
                    )
                quantity, total_cost = 0.0, 0.0
            else:
                sell_ratio = tx.quantity / quantity
                total_cost -= total_cost * sell_ratio
                quantity -= tx.quantity
        else:
            raise ValueError(f"type must be 'buy' or 'sell', got '{tx.type}'")

        position[0], position[1] = quantity, total_cost

    return {
        m: Holding(
            quantity=q,
            average_cost=c / q if q > 0 else 0.0,
            total_cost=c,
        )
        for m, (q, c) in state.items()
    }


def total_invested(transactions: Iterable[Transaction]) -> float:
    """Net capital invested: buy amounts minus sell proceeds."""
    total = 0.0
    for tx in transactions:
        total += tx.amount if tx.type == "buy" else -tx.amount
    return total


def holdings_as_of(
    transactions: Iterable[Transaction], date: str
) -> dict[str, Holding]:
    """Holdings built only from transactions dated on or before *date*.

    Insertion order is preserved among the included transactions.
    """
    return compute_holdings(tx for tx in transactions if tx.date <= date)
