"""CLI dashboard — prints a portfolio summary to the console."""

from metalledger.engine.models import METALS, Holding, PortfolioSummary, StopLossStatus


def print_summary(
    summary: PortfolioSummary,
    holdings: dict[str, Holding],
    stop_losses: list[StopLossStatus] | None = None,
    currency: str = "¥",
) -> str:
    """Format and print the portfolio summary.

    Returns:
        The formatted string (also printed to stdout).
    """
    stops = {s.metal: s for s in stop_losses or []}

    lines = [
        "─────────────── MetalLedger Portfolio ───────────────",
        f"  Value:           {currency}{summary.current_value:,.2f}",
        f"  Invested:        {currency}{summary.total_invested:,.2f}",
        f"  Unrealized:      {currency}{summary.unrealized_gain:,.2f} "
        f"({summary.unrealized_gain_pct:.2f}%)",
        f"  Target progress: {summary.target_progress_pct:.2f}%",
        f"  Days remaining:  {summary.days_remaining}",
        f"  Gold/Silver:     {summary.gold_silver_ratio:.2f}",
    ]
    for metal in METALS:
        h = holdings[metal]
        line = (
            f"  {metal.capitalize():<9} {h.quantity:>10.2f}g  "
            f"avg {currency}{h.average_cost:,.2f}  "
            f"{summary.allocation[metal]:5.1f}%"
        )
        if metal in stops:
            line += f"  stop: {stops[metal].status}"
        lines.append(line)
    lines.append("──────────────────────────────────────────────────────")

    output = "\n".join(lines)
    print(output)
    return output
