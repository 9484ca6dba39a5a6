import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from insider_tracker.config import load_config
from insider_tracker.db import init_db
from insider_tracker.jobs.scheduler import run_forever
from insider_tracker.util.log import configure_logging


def main() -> None:
    cfg = load_config()
    configure_logging(cfg.LOG_LEVEL)
    init_db(cfg.DB_DSN)
    run_forever(cfg)


if __name__ == "__main__":
    main()
