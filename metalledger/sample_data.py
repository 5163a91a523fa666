"""Demo data — thirty days of synthetic prices and five opening purchases.

Prices follow a slow sine wave plus uniform noise around typical per-gram
levels; RSI and VIX readings are drawn uniformly from plausible ranges.
"""

import logging
import math
from datetime import date, timedelta
from typing import Optional

import numpy as np

from metalledger.engine.models import PricePoint, Transaction

logger = logging.getLogger("metalledger")

SAMPLE_DAYS = 30

# (base, wave amplitude, noise span) per metal
_PRICE_SHAPE = {
    "gold": (520.0, 20.0, 10.0),
    "silver": (6.8, 0.5, 0.3),
    "platinum": (215.0, 15.0, 8.0),
}

# (low, span) of the uniform RSI draw per metal
_RSI_RANGE = {
    "gold": (30.0, 40.0),
    "silver": (35.0, 35.0),
    "platinum": (32.0, 38.0),
}

# (day index, metal, grams, platform, notes)
_PURCHASES = (
    (5, "gold", 30.5, "Huaan ETF", "Initial purchase - gold allocation"),
    (5, "silver", 1500.0, "E Fund ETF", "Initial purchase - silver allocation"),
    (5, "platinum", 25.0, "ICBC Paper Gold", "Initial purchase - platinum allocation"),
    (15, "gold", 25.0, "Huaan ETF", "Second month purchase"),
    (15, "silver", 1200.0, "E Fund ETF", "Second month purchase"),
)


def generate_sample_data(
    today: Optional[date] = None,
    seed: Optional[int] = None,
) -> tuple[list[PricePoint], list[Transaction]]:
    """Build the demo price series (ascending) and purchase history.

    The series covers the ``SAMPLE_DAYS`` days ending yesterday.  Pass
    *seed* for a reproducible draw.
    """
    today = today or date.today()
    rng = np.random.default_rng(seed)
    start = today - timedelta(days=SAMPLE_DAYS)

    prices: list[PricePoint] = []
    for i in range(SAMPLE_DAYS):
        wave = math.sin(i / 5)
        values = {
            metal: round(base + wave * amp + rng.uniform(0, noise), 2)
            for metal, (base, amp, noise) in _PRICE_SHAPE.items()
        }
        rsi = {
            metal: round(low + rng.uniform(0, span), 2)
            for metal, (low, span) in _RSI_RANGE.items()
        }
        prices.append(
            PricePoint(
                date=(start + timedelta(days=i)).isoformat(),
                gold_price=values["gold"],
                silver_price=values["silver"],
                platinum_price=values["platinum"],
                gold_rsi=rsi["gold"],
                silver_rsi=rsi["silver"],
                platinum_rsi=rsi["platinum"],
                vix=round(15 + rng.uniform(0, 15), 2),
            )
        )

    transactions = []
    for day, metal, grams, platform, notes in _PURCHASES:
        point = prices[day]
        price = point.price(metal)
        transactions.append(
            Transaction(
                date=point.date,
                metal=metal,
                type="buy",
                quantity=grams,
                price=price,
                amount=grams * price,
                rsi=point.rsi(metal),
                gsr=point.gold_price / point.silver_price,
                platform=platform,
                notes=notes,
            )
        )
    return prices, transactions


def has_data(store) -> bool:
    """True when *store* already holds prices or transactions."""
    return bool(store.prices.get_latest() or store.transactions.list_transactions())


def load_sample_data(store, today: Optional[date] = None, seed: Optional[int] = None) -> int:
    """Merge the demo data into *store*.

    Sample prices replace stored points for the same dates; purchases are
    appended.  Returns the number of price points written.
    """
    prices, transactions = generate_sample_data(today, seed)
    for point in prices:
        store.prices.upsert(point)
    for tx in transactions:
        store.transactions.insert(tx)
    logger.info(
        "Loaded sample data: %d price points, %d transactions",
        len(prices), len(transactions),
    )
    return len(prices)
