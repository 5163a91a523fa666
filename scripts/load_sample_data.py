"""One-shot script to seed the MetalLedger database with demo data.

Usage (from the project root):
    python -m scripts.load_sample_data --seed 42
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from metalledger.config import load_config
from metalledger.repos.store import AppDataStore
from metalledger.sample_data import has_data, load_sample_data


def _main(seed: int | None, force: bool) -> None:
    config = load_config()
    store = AppDataStore(config.db_path)
    log = logging.getLogger("metalledger")
    if has_data(store) and not force:
        log.warning("%s already holds data; use --force to merge", config.db_path)
        return
    load_sample_data(store, seed=seed)
    log.info("Done → %s", config.db_path)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load demo prices and transactions")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--force", action="store_true", help="Merge into a non-empty store")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    _main(args.seed, args.force)
