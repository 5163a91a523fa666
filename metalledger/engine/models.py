"""Engine data models — typed records consumed and produced by the engine."""

from dataclasses import dataclass, field
from typing import Literal, Optional


Metal = Literal["gold", "silver", "platinum"]

METALS: tuple[str, ...] = ("gold", "silver", "platinum")


def check_metal(metal: str) -> str:
    """Return *metal* unchanged, raising ``ValueError`` for unknown tags."""
    if metal not in METALS:
        raise ValueError(
            f"metal must be one of {', '.join(METALS)}, got '{metal}'"
        )
    return metal


# ── Inputs ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PricePoint:
    """One day's price observation (currency per gram) with RSI readings."""

    date: str  # YYYY-MM-DD
    gold_price: float
    silver_price: float
    platinum_price: float
    gold_rsi: float = 50.0
    silver_rsi: float = 50.0
    platinum_rsi: float = 50.0
    vix: Optional[float] = None
    id: str = ""

    def price(self, metal: str) -> float:
        """Price per gram of *metal* on this day."""
        return getattr(self, f"{check_metal(metal)}_price")

    def rsi(self, metal: str) -> float:
        """RSI reading of *metal* on this day."""
        return getattr(self, f"{check_metal(metal)}_rsi")

    def prices(self) -> dict[str, float]:
        return {m: self.price(m) for m in METALS}


@dataclass(frozen=True)
class Transaction:
    """A single buy or sell of one metal."""

    date: str
    metal: str  # "gold", "silver" or "platinum"
    type: str  # "buy" or "sell"
    quantity: float  # grams
    price: float  # currency per gram
    amount: float  # quantity × price
    rsi: float = 0.0
    gsr: float = 0.0
    platform: str = ""
    notes: str = ""
    id: str = ""


@dataclass(frozen=True)
class RSIThresholds:
    pause: float = 70.0
    reduce: float = 50.0
    normal: float = 30.0


@dataclass(frozen=True)
class GSRParameters:
    normal_min: float = 65.0
    normal_max: float = 75.0
    silver_cheap: float = 85.0
    gold_cheap: float = 55.0


@dataclass(frozen=True)
class StopLossParameters:
    volatility_multiplier: float = 2.5
    hard_stop_percent: float = -25.0
    trailing_stop_percent: float = -15.0


def _default_allocation() -> dict[str, float]:
    return {"gold": 50.0, "silver": 35.0, "platinum": 15.0}


def _default_spreads() -> dict[str, tuple[float, ...]]:
    return {
        "gold": (-1.0, -2.5, -4.0, -6.0),
        "silver": (-2.0, -4.0, -6.5, -9.0),
        "platinum": (-1.5, -3.5, -5.5, -8.0),
    }


@dataclass(frozen=True)
class StrategyConfig:
    """Strategy parameters that drive every planning decision.

    Target allocations are percentages that should sum to 100; the engine
    does not enforce it.  Spreads are four negative percentages per metal,
    one per limit-order tier.
    """

    total_capital: float = 100_000.0
    accumulation_start_date: str = ""
    accumulation_end_date: str = ""
    holding_period_end_date: str = ""
    active_capital_percent: float = 85.0
    opportunity_capital_percent: float = 15.0
    target_allocation: dict[str, float] = field(default_factory=_default_allocation)
    limit_order_spreads: dict[str, tuple[float, ...]] = field(
        default_factory=_default_spreads
    )
    rsi_thresholds: RSIThresholds = field(default_factory=RSIThresholds)
    gsr_parameters: GSRParameters = field(default_factory=GSRParameters)
    stop_loss_parameters: StopLossParameters = field(
        default_factory=StopLossParameters
    )


# ── Derived records ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Holding:
    """Position state of one metal, rebuilt from the transaction history."""

    quantity: float = 0.0  # grams
    average_cost: float = 0.0  # currency per gram
    total_cost: float = 0.0  # cost basis of the remaining quantity


@dataclass(frozen=True)
class TierProposal:
    """One tier of a tiered limit-order schedule."""

    tier: int  # 1–4
    amount: float
    target_price: float
    quantity: float
    percentage: float  # share of the allocation, e.g. 40.0


@dataclass(frozen=True)
class LimitOrder:
    """A limit-order proposal and its caller-driven lifecycle state."""

    metal: str
    tier: int
    amount: float
    target_price: float
    quantity: float
    status: str = "pending"  # "pending", "filled" or "cancelled"
    created_date: str = ""
    filled_date: Optional[str] = None
    filled_price: Optional[float] = None
    id: str = ""


@dataclass(frozen=True)
class GSRRebalancing:
    """Gold-silver-ratio nudge attached to a monthly plan."""

    needed: bool = False
    from_metal: Optional[str] = None
    to_metal: Optional[str] = None
    amount: Optional[float] = None  # capital redirected to ``to_metal``


@dataclass(frozen=True)
class MonthlyInvestmentCalculation:
    """Value-averaging contribution plan for one month."""

    month: str  # YYYY-MM
    target_value: float
    current_value: float
    required_investment: float
    rsi_adjustments: dict[str, float]
    gsr_rebalancing: GSRRebalancing
    final_allocation: dict[str, float]


@dataclass(frozen=True)
class StopLossStatus:
    """Stop-loss levels and breach proximity for one metal."""

    metal: str
    current_price: float
    average_cost: float
    dynamic_stop_loss: float
    hard_stop_loss: float
    distance_from_stop: float  # percent of current price
    status: str  # "safe", "warning" or "danger"
    trailing_stop_loss: Optional[float] = None


@dataclass(frozen=True)
class RebalanceTrade:
    metal: str
    amount: float
    quantity: float


@dataclass(frozen=True)
class RebalancingRecommendation:
    """Drift-based two-metal rebalancing proposal."""

    needed: bool
    current_allocation: dict[str, float]
    target_allocation: dict[str, float]
    deviations: dict[str, float]
    sell: Optional[RebalanceTrade] = None
    buy: Optional[RebalanceTrade] = None


@dataclass(frozen=True)
class PortfolioSummary:
    """Headline figures for the dashboard."""

    current_value: float
    total_invested: float
    unrealized_gain: float
    unrealized_gain_pct: float
    target_progress_pct: float
    days_remaining: int
    gold_silver_ratio: float
    allocation: dict[str, float]


@dataclass(frozen=True)
class PerformanceSummary:
    total_invested: float
    current_value: float
    total_return_pct: float
    max_drawdown_pct: float
    sharpe_ratio: float
    fill_rate: float


@dataclass(frozen=True)
class MonthlyReport:
    """Month-end review figures with a letter grade."""

    month: str
    invested: float
    portfolio_value_start: float
    portfolio_value_end: float
    monthly_return: float  # percent
    fill_rate: float  # percent
    avg_cost_vs_market: float  # percent, negative = bought below market
    orders_placed: int
    orders_filled: int
    grade: str  # "A", "B" or "C"
    notes: str = ""
