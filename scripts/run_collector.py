import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from insider_tracker.config import load_config
from insider_tracker.jobs.scheduler import run_once
from insider_tracker.util.log import configure_logging


def main() -> None:
    ap = argparse.ArgumentParser(description="Run one Form 4 collection batch and print the summary.")
    ap.add_argument("--limit", type=int, default=None, help="Override MAX_FILINGS_PER_RUN")
    ap.add_argument("--detail", action="store_true", help="Include per-filing outcomes")
    ap.add_argument("--no-signals", action="store_true", help="Skip score/cluster recomputation")
    args = ap.parse_args()

    cfg = load_config()
    if args.limit is not None:
        cfg = replace(cfg, MAX_FILINGS_PER_RUN=args.limit)
    if args.no_signals:
        cfg = replace(cfg, RUN_SIGNALS_AFTER_INGEST=False)
    configure_logging(cfg.LOG_LEVEL)

    summary = run_once(cfg)
    print(json.dumps(summary.to_dict(include_outcomes=args.detail), indent=2))
    if not summary.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
