"""Tests for tiered limit-order generation and the order lifecycle."""

import pytest

from metalledger.engine.limit_orders import (
    TIER_PERCENTAGES,
    build_limit_orders,
    cancel_order,
    count_by_status,
    generate_limit_orders,
    mark_filled,
)

GOLD_SPREADS = [-1, -2.5, -4, -6]


class TestGenerateLimitOrders:
    def test_four_tiers_for_gold(self):
        tiers = generate_limit_orders("gold", 10_000, 500, GOLD_SPREADS)
        assert [t.tier for t in tiers] == [1, 2, 3, 4]
        assert [t.amount for t in tiers] == pytest.approx([4000, 3000, 2000, 1000])
        assert [t.target_price for t in tiers] == pytest.approx([495, 487.5, 480, 470])
        assert [t.quantity for t in tiers] == pytest.approx(
            [8.0808, 6.1538, 4.1667, 2.1277], abs=1e-4
        )
        assert [t.percentage for t in tiers] == pytest.approx([40, 30, 20, 10])

    def test_amounts_sum_to_allocation(self):
        tiers = generate_limit_orders("silver", 7_345.5, 6.8, [-2, -4, -6.5, -9])
        assert sum(t.amount for t in tiers) == pytest.approx(7_345.5)

    def test_quantity_matches_amount_over_target(self):
        for t in generate_limit_orders("platinum", 3_000, 210, [-1.5, -3.5, -5.5, -8]):
            assert t.quantity == pytest.approx(t.amount / t.target_price)

    def test_zero_allocation(self):
        tiers = generate_limit_orders("gold", 0, 500, GOLD_SPREADS)
        assert all(t.amount == 0 and t.quantity == 0 for t in tiers)

    def test_non_positive_target_yields_zero_quantity(self):
        tiers = generate_limit_orders("gold", 1_000, 500, [-100, -2, -3, -4])
        assert tiers[0].target_price == pytest.approx(0)
        assert tiers[0].quantity == 0
        assert tiers[1].quantity > 0

    def test_unknown_metal(self):
        with pytest.raises(ValueError):
            generate_limit_orders("copper", 1_000, 5, GOLD_SPREADS)

    def test_spreads_must_cover_every_tier(self):
        with pytest.raises(ValueError, match="4 spreads, got 3"):
            generate_limit_orders("gold", 1_000, 500, [-1, -2.5, -4])
        with pytest.raises(ValueError, match="got 5"):
            generate_limit_orders("gold", 1_000, 500, [-1, -2, -3, -4, -5])

    def test_split_is_fixed(self):
        assert sum(TIER_PERCENTAGES) == pytest.approx(1.0)
        assert len(TIER_PERCENTAGES) == 4


# ── Lifecycle ────────────────────────────────────────────────────────────


def _orders():
    ids = iter(["o1", "o2", "o3", "o4"])
    return build_limit_orders(
        "gold", 10_000, 500, GOLD_SPREADS, "2024-03-01", id_factory=lambda: next(ids)
    )


class TestLifecycle:
    def test_built_orders_are_pending(self):
        orders = _orders()
        assert [o.id for o in orders] == ["o1", "o2", "o3", "o4"]
        assert all(o.status == "pending" for o in orders)
        assert all(o.created_date == "2024-03-01" for o in orders)
        assert all(o.filled_price is None for o in orders)

    def test_default_ids_are_unique(self):
        orders = build_limit_orders("gold", 10_000, 500, GOLD_SPREADS, "2024-03-01")
        assert len({o.id for o in orders}) == 4

    def test_fill(self):
        order = _orders()[0]
        filled = mark_filled(order, 494.0, "2024-03-04")
        assert filled.status == "filled"
        assert filled.filled_price == 494.0
        assert filled.filled_date == "2024-03-04"
        assert order.status == "pending"

    def test_fill_requires_positive_price(self):
        with pytest.raises(ValueError, match="filled_price"):
            mark_filled(_orders()[0], 0, "2024-03-04")

    def test_cancel(self):
        assert cancel_order(_orders()[1]).status == "cancelled"

    def test_no_transitions_out_of_terminal_states(self):
        filled = mark_filled(_orders()[0], 494.0, "2024-03-04")
        cancelled = cancel_order(_orders()[1])
        with pytest.raises(ValueError, match="pending"):
            mark_filled(filled, 490.0, "2024-03-05")
        with pytest.raises(ValueError, match="pending"):
            cancel_order(filled)
        with pytest.raises(ValueError, match="pending"):
            mark_filled(cancelled, 490.0, "2024-03-05")

    def test_count_by_status(self):
        orders = _orders()
        orders[0] = mark_filled(orders[0], 494.0, "2024-03-04")
        orders[1] = cancel_order(orders[1])
        assert count_by_status(orders) == 4
        assert count_by_status(orders, "filled") == 1
        assert count_by_status(orders, "cancelled") == 1
        assert count_by_status(orders, "pending") == 2
