"""
Riscalda le cache delle partite di oggi ripetendo warm_step finche' il lavoro e' finito.

Usage:
    python -m matchday.warm_today
    python -m matchday.warm_today --budget 20 --max-rounds 10
"""

import argparse
import asyncio
import json
import logging
from dataclasses import asdict

from matchday.core.config import get_log_level
from matchday.core.database import SessionLocal, init_db
from matchday.services.fixtures_service import FixtureSynchronizer
from matchday.services.warm_service import warm_step

logger = logging.getLogger(__name__)

DEFAULT_BUDGET = 20
DEFAULT_MAX_ROUNDS = 20


async def warm_today(budget: int, max_rounds: int) -> dict:
    synchronizer = FixtureSynchronizer()
    rounds = []
    db = SessionLocal()
    try:
        for round_no in range(1, max_rounds + 1):
            try:
                progress = await warm_step(db, synchronizer, budget)
            except Exception as e:
                logger.exception("Warm round %s interrotto", round_no)
                return {"ok": False, "error": f"{type(e).__name__}: {e}", "rounds": rounds}
            rounds.append(asdict(progress))
            if progress.done:
                break
    finally:
        db.close()
    return {"ok": bool(rounds) and rounds[-1]["done"], "rounds": rounds}


def main() -> None:
    parser = argparse.ArgumentParser(description="Warm today's fixtures cache")
    parser.add_argument("--budget", type=int, default=DEFAULT_BUDGET, help="provider calls per round")
    parser.add_argument("--max-rounds", type=int, default=DEFAULT_MAX_ROUNDS)
    args = parser.parse_args()

    logging.basicConfig(level=get_log_level(), format="%(levelname)s [%(name)s] %(message)s")
    init_db()
    summary = asyncio.run(warm_today(args.budget, args.max_rounds))
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
