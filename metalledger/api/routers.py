"""Internal API routers — data entry, engine views, and data management endpoints.

No calculation logic. Delegates persistence to the store and every number
to the engine.
"""

import json
import logging
import math
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from metalledger.config import Config, strategy_config_from_dict, strategy_config_to_dict
from metalledger.engine.holdings import compute_holdings
from metalledger.engine.indicators import latest_rsi, rsi_for_metals
from metalledger.engine.limit_orders import build_limit_orders, cancel_order, mark_filled
from metalledger.engine.models import METALS, PricePoint, Transaction
from metalledger.engine.performance import build_monthly_report, performance_summary
from metalledger.engine.planner import calculate_monthly_investment
from metalledger.engine.rebalancing import DEFAULT_THRESHOLD_PCT, calculate_rebalancing
from metalledger.engine.risk import monitor_stop_losses
from metalledger.engine.valuation import portfolio_summary
from metalledger.sample_data import has_data, load_sample_data

logger = logging.getLogger("metalledger")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_store = None  # Set via configure_routers()
_config: Optional[Config] = None  # Set via configure_routers()


def configure_routers(store, config: Optional[Config] = None) -> None:
    """Inject dependencies from the application startup.

    Args:
        store: An ``AppDataStore`` instance (or duck-type for tests).
        config: Application configuration; engine defaults apply when
            omitted.
    """
    global _store, _config  # noqa: PLW0603
    _store = store
    _config = config


def _require_store():
    if _store is None:
        raise HTTPException(status_code=503, detail="Data store not configured")
    return _store


def _risk_free_rate() -> float:
    return _config.risk_free_rate if _config else 0.02


def _rebalance_threshold() -> float:
    return _config.rebalance_threshold_pct if _config else DEFAULT_THRESHOLD_PCT


def _today() -> str:
    return date.today().isoformat()


# ── Input validation ─────────────────────────────────────────────────────


def _is_number(value) -> bool:
    # bool is an int subclass; JSON true/false are not numbers here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def valid_price(value) -> bool:
    return _is_number(value) and math.isfinite(value) and value > 0


def valid_rsi(value) -> bool:
    return _is_number(value) and 0 <= value <= 100


def valid_quantity(value) -> bool:
    return _is_number(value) and math.isfinite(value) and value > 0


def valid_date(value) -> bool:
    try:
        date.fromisoformat(str(value))
    except ValueError:
        return False
    return True


def _error(errors: list[str]) -> dict:
    return {"status": "error", "errors": errors}


# ── Strategy config ──────────────────────────────────────────────────────


@router.get("/config")
async def get_config():
    """Return the stored strategy configuration."""
    return strategy_config_to_dict(_require_store().strategy_config())


@router.post("/config")
async def post_config(body: dict):
    """Merge *body* into the stored strategy configuration and persist it."""
    store = _require_store()
    try:
        updated = strategy_config_from_dict(body, base=store.strategy_config())
    except ValueError as exc:
        return _error([str(exc)])
    store.settings.save(updated)
    logger.info("Strategy config updated: %s", sorted(body.keys()))
    return {"status": "ok", **strategy_config_to_dict(updated)}


# ── Transactions ─────────────────────────────────────────────────────────


@router.get("/transactions")
async def get_transactions(metal: Optional[str] = Query(default=None)):
    """Return transactions, newest first."""
    txs = _require_store().transactions.list_transactions()
    if metal:
        txs = [t for t in txs if t.metal == metal]
    return {"transactions": [asdict(t) for t in reversed(txs)], "total": len(txs)}


def _validate_transaction(body: dict) -> list[str]:
    errors = []
    if not valid_date(body.get("date")):
        errors.append("date must be YYYY-MM-DD")
    if body.get("metal") not in METALS:
        errors.append(f"metal must be one of {', '.join(METALS)}")
    if body.get("type") not in ("buy", "sell"):
        errors.append("type must be 'buy' or 'sell'")
    if not valid_quantity(body.get("quantity")):
        errors.append("quantity must be a positive number")
    if not valid_price(body.get("price")):
        errors.append("price must be a positive number")
    if body.get("rsi") is not None and not valid_rsi(body["rsi"]):
        errors.append("rsi must be 0–100")
    gsr = body.get("gsr")
    if gsr is not None and not (_is_number(gsr) and math.isfinite(gsr) and gsr >= 0):
        errors.append("gsr must be a non-negative number")
    return errors


@router.post("/transactions")
async def post_transaction(body: dict):
    """Record a buy or sell.

    ``amount`` is always quantity × price; a client-supplied amount is
    ignored.  ``gsr`` defaults to the ratio at the latest stored price point.
    """
    store = _require_store()
    errors = _validate_transaction(body)
    if errors:
        return _error(errors)

    gsr = body.get("gsr")
    if gsr is None:
        latest = store.prices.get_latest()
        gsr = latest.gold_price / latest.silver_price if latest and latest.silver_price > 0 else 0.0

    quantity, price = float(body["quantity"]), float(body["price"])
    tx = store.transactions.insert(
        Transaction(
            date=body["date"],
            metal=body["metal"],
            type=body["type"],
            quantity=quantity,
            price=price,
            amount=quantity * price,
            rsi=float(body.get("rsi") or 0.0),
            gsr=float(gsr),
            platform=str(body.get("platform", "")),
            notes=str(body.get("notes", "")),
        )
    )
    logger.info("Recorded %s of %.4fg %s at %.2f", tx.type, tx.quantity, tx.metal, tx.price)
    return {"status": "ok", "transaction": asdict(tx)}


@router.put("/transactions/{tx_id}")
async def put_transaction(tx_id: str, body: dict):
    """Correct an existing transaction.

    Fields missing from *body* keep their stored values; the merged record
    goes through the same checks as a new one and ``amount`` is recomputed.
    """
    store = _require_store()
    existing = store.transactions.get(tx_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Unknown transaction: {tx_id}")

    merged = {**asdict(existing), **body}
    errors = _validate_transaction(merged)
    if errors:
        return _error(errors)

    updated = store.transactions.update(
        tx_id,
        date=merged["date"],
        metal=merged["metal"],
        type=merged["type"],
        quantity=float(merged["quantity"]),
        price=float(merged["price"]),
        rsi=float(merged.get("rsi") or 0.0),
        gsr=float(merged.get("gsr") or 0.0),
        platform=str(merged.get("platform") or ""),
        notes=str(merged.get("notes") or ""),
    )
    logger.info("Updated transaction %s", tx_id)
    return {"status": "ok", "transaction": asdict(updated)}


@router.delete("/transactions/{tx_id}")
async def delete_transaction(tx_id: str):
    if not _require_store().transactions.delete(tx_id):
        raise HTTPException(status_code=404, detail=f"Unknown transaction: {tx_id}")
    return {"status": "ok"}


# ── Prices ───────────────────────────────────────────────────────────────


@router.get("/prices")
async def get_prices(limit: Optional[int] = Query(default=None, ge=1)):
    series = _require_store().prices.list_series(limit=limit)
    return {"prices": [asdict(p) for p in series], "total": len(series)}


@router.get("/prices/rsi")
async def get_derived_rsi():
    """RSI of each metal derived from the stored price history."""
    return rsi_for_metals(_require_store().prices.list_series())


@router.post("/prices")
async def post_price(body: dict):
    """Record a day's prices.

    RSI values omitted from *body* are derived from the stored history
    plus the new price (neutral 50 until enough history exists).
    """
    store = _require_store()
    errors = []
    if not valid_date(body.get("date")):
        errors.append("date must be YYYY-MM-DD")
    for metal in METALS:
        if not valid_price(body.get(f"{metal}_price")):
            errors.append(f"{metal}_price must be a positive number")
        key = f"{metal}_rsi"
        if key in body and not valid_rsi(body[key]):
            errors.append(f"{key} must be 0–100")
    if errors:
        return _error(errors)

    history = [p for p in store.prices.list_series() if p.date < body["date"]]
    rsi = {}
    for metal in METALS:
        key = f"{metal}_rsi"
        if key in body:
            rsi[key] = float(body[key])
        else:
            closes = [p.price(metal) for p in history] + [float(body[f"{metal}_price"])]
            rsi[key] = latest_rsi(closes)

    point = store.prices.upsert(
        PricePoint(
            date=body["date"],
            gold_price=float(body["gold_price"]),
            silver_price=float(body["silver_price"]),
            platinum_price=float(body["platinum_price"]),
            vix=float(body["vix"]) if body.get("vix") is not None else None,
            **rsi,
        )
    )
    return {"status": "ok", "price": asdict(point)}


@router.delete("/prices/{point_id}")
async def delete_price(point_id: str):
    if not _require_store().prices.delete(point_id):
        raise HTTPException(status_code=404, detail=f"Unknown price point: {point_id}")
    return {"status": "ok"}


# ── Engine views ─────────────────────────────────────────────────────────


@router.get("/holdings")
async def get_holdings():
    holdings = compute_holdings(_require_store().transactions.list_transactions())
    return {m: asdict(h) for m, h in holdings.items()}


@router.get("/valuation")
async def get_valuation(today: Optional[str] = Query(default=None)):
    """Dashboard summary: value, gain, allocation, GSR, countdown."""
    data = _require_store().load()
    summary = portfolio_summary(
        data.transactions, data.price_data, data.config, today=today or _today()
    )
    return asdict(summary)


@router.get("/plan/monthly")
async def get_monthly_plan(on: Optional[str] = Query(default=None, alias="date")):
    """Value-averaging contribution plan for the month of *date*."""
    data = _require_store().load()
    if not data.price_data:
        return _error(["No price data recorded"])
    current_date = on or _today()
    if not valid_date(current_date):
        return _error(["date must be YYYY-MM-DD"])
    plan = calculate_monthly_investment(
        current_date,
        data.config,
        compute_holdings(data.transactions),
        data.price_data[-1],
    )
    return asdict(plan)


@router.get("/stop-loss")
async def get_stop_loss():
    data = _require_store().load()
    statuses = monitor_stop_losses(
        compute_holdings(data.transactions),
        data.price_data,
        data.config.stop_loss_parameters,
    )
    return {"statuses": [asdict(s) for s in statuses]}


@router.get("/rebalancing")
async def get_rebalancing():
    data = _require_store().load()
    if not data.price_data:
        return _error(["No price data recorded"])
    latest = data.price_data[-1]
    rec = calculate_rebalancing(
        compute_holdings(data.transactions),
        latest.gold_price,
        latest.silver_price,
        latest.platinum_price,
        data.config.target_allocation,
        threshold_pct=_rebalance_threshold(),
    )
    return asdict(rec)


@router.get("/performance")
async def get_performance():
    data = _require_store().load()
    summary = performance_summary(
        data.transactions,
        data.price_data,
        data.limit_orders,
        risk_free_rate=_risk_free_rate(),
    )
    return asdict(summary)


@router.get("/reports/monthly/{month}")
async def get_monthly_report(month: str, notes: str = Query(default="")):
    if not valid_date(f"{month}-01"):
        return _error(["month must be YYYY-MM"])
    data = _require_store().load()
    report = build_monthly_report(
        month, data.transactions, data.price_data, data.limit_orders, notes=notes
    )
    return asdict(report)


# ── Limit orders ─────────────────────────────────────────────────────────


@router.get("/orders")
async def get_orders(status: Optional[str] = Query(default=None)):
    orders = _require_store().orders.list_orders(status_filter=status)
    return {"orders": [asdict(o) for o in orders], "total": len(orders)}


@router.post("/orders/generate")
async def generate_orders(body: dict):
    """Create four pending tier orders for one metal.

    ``current_price`` defaults to the metal's latest stored price.
    """
    store = _require_store()
    metal = body.get("metal")
    allocation = body.get("allocation_amount")
    errors = []
    if metal not in METALS:
        errors.append(f"metal must be one of {', '.join(METALS)}")
    if not valid_price(allocation):
        errors.append("allocation_amount must be a positive number")
    if errors:
        return _error(errors)

    price = body.get("current_price")
    if price is None:
        latest = store.prices.get_latest()
        if latest is None:
            return _error(["current_price is required when no price data is recorded"])
        price = latest.price(metal)
    if not valid_price(price):
        return _error(["current_price must be a positive number"])

    config = store.strategy_config()
    orders = build_limit_orders(
        metal,
        float(allocation),
        float(price),
        config.limit_order_spreads[metal],
        created_date=body.get("created_date") or _today(),
    )
    stored = store.orders.insert_many(orders)
    logger.info("Generated %d %s limit orders for %.2f", len(stored), metal, allocation)
    return {"status": "ok", "orders": [asdict(o) for o in stored]}


def _get_order_or_404(order_id: str):
    order = _require_store().orders.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Unknown order: {order_id}")
    return order


@router.post("/orders/{order_id}/fill")
async def fill_order(order_id: str, body: dict):
    order = _get_order_or_404(order_id)
    filled_price = body.get("filled_price")
    if not valid_price(filled_price):
        return _error(["filled_price must be a positive number"])
    try:
        updated = mark_filled(order, float(filled_price), body.get("filled_date") or _today())
    except ValueError as exc:
        return _error([str(exc)])
    _store.orders.save(updated)
    return {"status": "ok", "order": asdict(updated)}


@router.post("/orders/{order_id}/cancel")
async def cancel(order_id: str):
    order = _get_order_or_404(order_id)
    try:
        updated = cancel_order(order)
    except ValueError as exc:
        return _error([str(exc)])
    _store.orders.save(updated)
    return {"status": "ok", "order": asdict(updated)}


# ── Data management ──────────────────────────────────────────────────────


@router.get("/data/export")
async def export_data():
    return json.loads(_require_store().export_json())


@router.post("/data/import")
async def import_data(body: dict):
    if not _require_store().import_json(json.dumps(body)):
        return _error(["Invalid data document"])
    return {"status": "ok"}


@router.post("/data/reset")
async def reset_data():
    _require_store().reset()
    return {"status": "ok"}


@router.post("/data/sample")
async def sample_data(force: bool = Query(default=False)):
    """Load the demo dataset; refuses when data exists unless *force* is set."""
    store = _require_store()
    if has_data(store) and not force:
        return _error(["Store already holds data; pass force=true to merge sample data"])
    count = load_sample_data(store)
    return {"status": "ok", "price_points": count}
