from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from insider_tracker.config import Config
from insider_tracker.models import IngestSummary
from insider_tracker.sec.ingest import run_ingest

log = logging.getLogger(__name__)


def run_once(cfg: Config, *, session: Any = None) -> IngestSummary:
    summary = run_ingest(cfg, session=session)
    log.info(f"run result: {summary.to_dict()}")
    return summary


def run_forever(
    cfg: Config,
    *,
    max_runs: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run one ingestion batch every COLLECT_INTERVAL_SECONDS.

    The interval is measured start-to-start; a slow run shortens the following pause
    rather than stacking runs. A crashed run is logged and the loop carries on.
    Returns the number of runs performed (only reached when max_runs is set).
    """
    interval = max(5, int(cfg.COLLECT_INTERVAL_SECONDS))
    log.info(f"starting; interval={interval}s db={cfg.DB_DSN}")

    runs = 0
    while max_runs is None or runs < max_runs:
        started = time.monotonic()
        try:
            run_once(cfg)
        except Exception as e:
            log.exception(f"run failed: {e}")
        runs += 1

        if max_runs is not None and runs >= max_runs:
            break
        elapsed = time.monotonic() - started
        sleep(max(0.0, interval - elapsed))

    return runs
