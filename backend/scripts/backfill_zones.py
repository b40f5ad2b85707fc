"""Rebuild run_hexes / run_zone_contributions / zone_ownerships.

Re-runs the same path and contribution computation as finalize for every
FINALIZED run in scope, then recomputes ownership for each affected cycle.

Usage examples:
  python scripts/backfill_zones.py                       # every finalized run
  python scripts/backfill_zones.py --cycle 2025-12-22    # one weekly cycle
  python scripts/backfill_zones.py --run-id abc --run-id def
"""
import argparse
import logging
import sys

from territory.db import Base, SessionLocal, engine
from territory.models import run, run_hex, run_loop, run_zone_contribution, zone_ownership  # noqa: F401
from territory.services.finalization import backfill_runs


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Recompute zone data for finalized runs")
    ap.add_argument("--cycle", help="Only runs scored in this cycle (Monday, YYYY-MM-DD)")
    ap.add_argument("--run-id", action="append", dest="run_ids", help="Restrict to these run ids (repeatable)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        summary = backfill_runs(db, run_ids=args.run_ids, cycle_key=args.cycle)
    finally:
        db.close()

    print(f"Processed {len(summary.processed)} runs, {len(summary.failed)} failed; cycles: {', '.join(summary.cycles) or '-'}")
    for run_id, err in summary.failed.items():
        print(f"  {run_id}: {err}", file=sys.stderr)
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
