"""MetalLedger — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serving the API and printing a console summary.
"""

import logging

from fastapi import FastAPI

from metalledger.api.routers import router

app = FastAPI(title="MetalLedger Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("metalledger")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the chosen command."""
    import argparse

    from metalledger.config import load_config, load_strategy_config
    from metalledger.repos.store import AppDataStore

    parser = argparse.ArgumentParser(description="MetalLedger precious-metals tracker")
    parser.add_argument(
        "command",
        choices=["serve", "summary"],
        nargs="?",
        default="serve",
        help="Run the API server or print a portfolio summary (default: serve)",
    )
    parser.add_argument("--env", help="Path to a .env file")
    args = parser.parse_args(argv)

    config = load_config(env_path=args.env)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    store = AppDataStore(config.db_path)
    if config.strategy_config_path and store.settings.load() is None:
        store.settings.save(load_strategy_config(config.strategy_config_path))
        logger.info("Seeded strategy config from %s", config.strategy_config_path)

    if args.command == "summary":
        _print_summary(store)
        return

    from metalledger.api.routers import configure_routers

    configure_routers(store=store, config=config)
    _serve(config.api_port)


def _print_summary(store) -> None:
    from metalledger.cli.dashboard import print_summary
    from metalledger.engine.holdings import compute_holdings
    from metalledger.engine.risk import monitor_stop_losses
    from metalledger.engine.valuation import portfolio_summary

    data = store.load()
    holdings = compute_holdings(data.transactions)
    print_summary(
        portfolio_summary(data.transactions, data.price_data, data.config),
        holdings,
        monitor_stop_losses(holdings, data.price_data, data.config.stop_loss_parameters),
    )


def _serve(port: int) -> None:
    import uvicorn

    logger.info("Starting MetalLedger API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    _run_cli()
