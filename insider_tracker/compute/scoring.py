from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from insider_tracker.config import Config
from insider_tracker.util.time import utcnow_iso, window_start_iso

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


NEUTRAL_SCORE = 50

# Role tiers are matched as substrings of the role label recorded on the transaction.
OFFICER_TIER_MARKERS: Tuple[str, ...] = ("CEO", "CFO")
DIRECTOR_TIER_MARKERS: Tuple[str, ...] = ("Director",)
OFFICER_POINTS = 15
DIRECTOR_POINTS = 10
OTHER_ROLE_POINTS = 5

# (value strictly above, points), highest first
BUY_VALUE_TIERS: Tuple[Tuple[float, int], ...] = ((1_000_000, 10), (500_000, 7), (100_000, 4))
SELL_VALUE_TIERS: Tuple[Tuple[float, int], ...] = ((1_000_000, 10), (500_000, 7))

# (distinct parties at least, points), highest first
BUYER_CLUSTER_BONUS: Tuple[Tuple[int, int], ...] = ((4, 20), (3, 15), (2, 10))
SELLER_CLUSTER_PENALTY: Tuple[Tuple[int, int], ...] = ((3, 20), (2, 10))

# (score at least, signal), highest first; anything lower is LOWEST_SIGNAL
SIGNAL_BANDS: Tuple[Tuple[int, str], ...] = (
    (90, "STRONG BUY"),
    (75, "BUY"),
    (60, "MODERATE BUY"),
    (40, "NEUTRAL"),
    (25, "MODERATE SELL"),
)
LOWEST_SIGNAL = "SELL"


@dataclass(frozen=True)
class ScoreResult:
    score: int
    signal: str
    num_buyers: int
    num_sellers: int
    total_buy_value: float
    total_sell_value: float
    num_transactions: int


def role_points(role: str | None) -> int:
    r = role or ""
    if any(m in r for m in OFFICER_TIER_MARKERS):
        return OFFICER_POINTS
    if any(m in r for m in DIRECTOR_TIER_MARKERS):
        return DIRECTOR_POINTS
    return OTHER_ROLE_POINTS


def _tier_points(value: float, tiers: Sequence[Tuple[float, int]]) -> int:
    for threshold, points in tiers:
        if value > threshold:
            return points
    return 0


def _band_points(count: int, bands: Sequence[Tuple[int, int]]) -> int:
    for at_least, points in bands:
        if count >= at_least:
            return points
    return 0


def signal_for_score(score: int) -> str:
    for at_least, signal in SIGNAL_BANDS:
        if score >= at_least:
            return signal
    return LOWEST_SIGNAL


def calculate_score(transactions: Iterable[Mapping[str, Any]]) -> ScoreResult:
    """Score one issuer's trailing-window transactions.

    Each row needs party_cik, is_purchase, transaction_value and insider_role. Every
    non-buy row (sales and codes mapped to Other) sits on the sell side.
    """
    score = NEUTRAL_SCORE
    buyers: set[str] = set()
    sellers: set[str] = set()
    total_buy = 0.0
    total_sell = 0.0
    n = 0

    for tx in transactions:
        n += 1
        value = float(tx["transaction_value"] or 0.0)
        points = role_points(tx["insider_role"])
        if int(tx["is_purchase"] or 0) == 1:
            buyers.add(str(tx["party_cik"]))
            total_buy += value
            score += points + _tier_points(value, BUY_VALUE_TIERS)
        else:
            sellers.add(str(tx["party_cik"]))
            total_sell += value
            score -= points + _tier_points(value, SELL_VALUE_TIERS)

    score += _band_points(len(buyers), BUYER_CLUSTER_BONUS)
    score -= _band_points(len(sellers), SELLER_CLUSTER_PENALTY)

    final = max(0, min(100, int(round(score))))
    return ScoreResult(
        score=final,
        signal=signal_for_score(final),
        num_buyers=len(buyers),
        num_sellers=len(sellers),
        total_buy_value=round(total_buy, 2),
        total_sell_value=round(total_sell, 2),
        num_transactions=n,
    )


def _load_window_rows(conn: Any, since: str) -> Dict[str, List[Mapping[str, Any]]]:
    rows = conn.execute(
        """
        SELECT issuer_cik, party_cik, is_purchase, transaction_value, insider_role
        FROM transactions
        WHERE transaction_date >= ?
        ORDER BY issuer_cik, transaction_id
        """,
        (since,),
    ).fetchall()
    by_issuer: Dict[str, List[Mapping[str, Any]]] = {}
    for r in rows:
        by_issuer.setdefault(str(r["issuer_cik"]), []).append(r)
    return by_issuer


def update_all_scores(conn: Any, cfg: Config, *, as_of: date | None = None) -> int:
    """Recompute issuer_scores for every issuer with transactions in the trailing window.

    Issuers with nothing in the window keep whatever row they had. Returns issuers scored.
    """
    since = window_start_iso(cfg.SCORE_WINDOW_DAYS, as_of)
    by_issuer = _load_window_rows(conn, since)
    now = utcnow_iso()

    for issuer_cik, txs in by_issuer.items():
        res = calculate_score(txs)
        conn.execute(
            """
            INSERT INTO issuer_scores (
                issuer_cik, score, signal,
                num_buyers_30d, num_sellers_30d,
                total_buy_value_30d, total_sell_value_30d,
                num_transactions_30d, last_updated
            ) VALUES (?,?,?,?,?,?,?,?,?)
            ON CONFLICT(issuer_cik) DO UPDATE SET
                score=excluded.score,
                signal=excluded.signal,
                num_buyers_30d=excluded.num_buyers_30d,
                num_sellers_30d=excluded.num_sellers_30d,
                total_buy_value_30d=excluded.total_buy_value_30d,
                total_sell_value_30d=excluded.total_sell_value_30d,
                num_transactions_30d=excluded.num_transactions_30d,
                last_updated=excluded.last_updated
            """,
            (
                issuer_cik,
                res.score,
                res.signal,
                res.num_buyers,
                res.num_sellers,
                res.total_buy_value,
                res.total_sell_value,
                res.num_transactions,
                now,
            ),
        )
        _debug(f"Score issuer={issuer_cik} score={res.score} signal={res.signal} txs={res.num_transactions}")

    log.info(f"Scored {len(by_issuer)} issuers (window since {since})")
    return len(by_issuer)
