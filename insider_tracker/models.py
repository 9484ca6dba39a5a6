from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class SkipReason(str, Enum):
    INDEX_FETCH_FAILED = "index_fetch_failed"
    NO_DOCUMENT_LINK = "no_document_link"
    WRONG_DOCUMENT_TYPE = "wrong_document_type"
    DOCUMENT_FETCH_FAILED = "document_fetch_failed"
    SCHEMA_MISMATCH = "schema_mismatch"
    NO_USABLE_TRANSACTIONS = "no_usable_transactions"


@dataclass(frozen=True)
class Processed:
    url: str
    document_url: str
    issuer_cik: str
    ticker: str
    new_transactions: int
    duplicates: int

    status = "processed"


@dataclass(frozen=True)
class Skipped:
    url: str
    reason: SkipReason
    detail: str = ""

    status = "skipped"


@dataclass(frozen=True)
class Errored:
    url: str
    cause: str

    status = "error"


Outcome = Union[Processed, Skipped, Errored]


def outcome_to_dict(o: Outcome) -> Dict[str, Any]:
    d: Dict[str, Any] = {"status": o.status, "url": o.url}
    if isinstance(o, Processed):
        d.update(
            {
                "documentUrl": o.document_url,
                "issuerCik": o.issuer_cik,
                "ticker": o.ticker,
                "newTransactions": o.new_transactions,
                "duplicates": o.duplicates,
            }
        )
    elif isinstance(o, Skipped):
        d.update({"reason": o.reason.value, "detail": o.detail})
    else:
        d["cause"] = o.cause
    return d


@dataclass
class IngestSummary:
    """Result of one ingestion run.

    A feed-level failure is the only case with success=False; every other failure is
    accounted for per candidate in `outcomes`.
    """

    timestamp: str
    success: bool = True
    error: Optional[str] = None
    feed_entries: int = 0
    total_candidates: int = 0
    outcomes: List[Outcome] = field(default_factory=list)
    scores_updated: int = 0
    clusters_created: int = 0
    signal_errors: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, Processed))

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, Skipped))

    @property
    def errors(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, Errored))

    @property
    def new_transactions(self) -> int:
        return sum(o.new_transactions for o in self.outcomes if isinstance(o, Processed))

    def skip_counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for o in self.outcomes:
            if isinstance(o, Skipped):
                out[o.reason.value] = out.get(o.reason.value, 0) + 1
        return out

    def to_dict(self, *, include_outcomes: bool = False) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error, "timestamp": self.timestamp}

        d: Dict[str, Any] = {
            "success": True,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "totalCandidates": self.total_candidates,
            "timestamp": self.timestamp,
            "feedEntries": self.feed_entries,
            "newTransactions": self.new_transactions,
            "skipReasons": self.skip_counts(),
            "scoresUpdated": self.scores_updated,
            "clustersCreated": self.clusters_created,
        }
        if self.signal_errors:
            d["signalErrors"] = list(self.signal_errors)
        if include_outcomes:
            d["outcomes"] = [outcome_to_dict(o) for o in self.outcomes]
        return d
