from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any

from insider_tracker.config import Config
from insider_tracker.util.time import utcnow_iso, window_start_iso

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


MIN_DISTINCT_BUYERS = 2
POINTS_PER_INSIDER = 20
VALUE_POINTS_CAP = 40
DOLLARS_PER_VALUE_POINT = 100_000


def cluster_score(num_insiders: int, total_value: float) -> int:
    value_points = min(VALUE_POINTS_CAP, math.floor(float(total_value or 0.0) / DOLLARS_PER_VALUE_POINT))
    return int(min(100, num_insiders * POINTS_PER_INSIDER + value_points))


def detect_cluster_buys(conn: Any, cfg: Config, *, as_of: date | None = None) -> int:
    """Record same-day buying by >=2 distinct insiders of one issuer.

    Candidates are buy transactions within the trailing window, grouped by
    (issuer, transaction date). A cluster_buys row is written the first time a group
    qualifies and never touched again. Returns the number of new rows.
    """
    since = window_start_iso(cfg.CLUSTER_WINDOW_DAYS, as_of)
    groups = conn.execute(
        """
        SELECT
            issuer_cik,
            transaction_date AS cluster_date,
            COUNT(DISTINCT party_cik) AS num_insiders,
            COUNT(*) AS num_transactions,
            SUM(transaction_value) AS total_value,
            SUM(shares) AS total_shares
        FROM transactions
        WHERE is_purchase = 1
          AND transaction_date >= ?
        GROUP BY issuer_cik, transaction_date
        HAVING COUNT(DISTINCT party_cik) >= ?
        ORDER BY transaction_date, issuer_cik
        """,
        (since, MIN_DISTINCT_BUYERS),
    ).fetchall()

    now = utcnow_iso()
    created = 0
    for g in groups:
        num_insiders = int(g["num_insiders"])
        total_value = float(g["total_value"] or 0.0)
        score = cluster_score(num_insiders, total_value)
        cur = conn.execute(
            """
            INSERT INTO cluster_buys (
                issuer_cik, cluster_date, num_insiders, num_transactions,
                total_value, total_shares, score, detected_at
            ) VALUES (?,?,?,?,?,?,?,?)
            ON CONFLICT(issuer_cik, cluster_date) DO NOTHING
            """,
            (
                g["issuer_cik"],
                g["cluster_date"],
                num_insiders,
                int(g["num_transactions"]),
                total_value,
                float(g["total_shares"] or 0.0),
                score,
                now,
            ),
        )
        if cur.rowcount == 1:
            created += 1
            _debug(
                f"Cluster issuer={g['issuer_cik']} date={g['cluster_date']} insiders={num_insiders} "
                f"value={total_value:.0f} score={score}"
            )

    log.info(f"Cluster detection: {len(groups)} qualifying groups, {created} new (window since {since})")
    return created
