from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from insider_tracker.compute.clusters import detect_cluster_buys
from insider_tracker.compute.scoring import update_all_scores
from insider_tracker.config import Config
from insider_tracker.db import connect, create_schema, upsert_app_config
from insider_tracker.models import Errored, IngestSummary, Outcome, Processed, SkipReason, Skipped
from insider_tracker.sec.edgar import RateLimiter, SecRequestError, get_text, new_session
from insider_tracker.sec.parser import ParsedFiling, extract_filing
from insider_tracker.sec.poller import FeedError, fetch_candidate_urls
from insider_tracker.sec.resolver import resolve_document_url
from insider_tracker.sec.store import insert_transaction, upsert_issuer, upsert_party
from insider_tracker.util.time import utc_today, utcnow_iso

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


class IngestionPipeline:
    """Feed -> index page -> ownershipDocument -> store, then scores and clusters.

    Candidates are handled one at a time in feed order. Each candidate ends as exactly one
    Processed / Skipped / Errored outcome; nothing a single filing does can stop the batch.
    Only a feed failure ends the run early (success=False summary).

    Storage for each candidate is its own transaction: committed on success, rolled back
    on error. Re-running over the same feed window writes nothing new because issuers,
    parties and transactions are all insert-if-absent.
    """

    def __init__(
        self,
        conn: Any,
        cfg: Config,
        *,
        session: Any = None,
        limiter: RateLimiter | None = None,
    ):
        self.conn = conn
        self.cfg = cfg
        self.session = session if session is not None else new_session(cfg.SEC_USER_AGENT)
        self.limiter = limiter if limiter is not None else RateLimiter(cfg.SEC_MIN_INTERVAL_SECONDS)

    # -----------------
    # Run
    # -----------------

    def ingest(self) -> IngestSummary:
        started = utcnow_iso()
        try:
            feed_entries, candidates = fetch_candidate_urls(self.session, self.cfg, self.limiter)
        except FeedError as e:
            log.error(f"Ingest aborted: {e}")
            return IngestSummary(timestamp=utcnow_iso(), success=False, error=str(e))

        summary = IngestSummary(
            timestamp=started,
            feed_entries=feed_entries,
            total_candidates=len(candidates),
        )

        for url in candidates:
            outcome = self.process_candidate(url)
            summary.outcomes.append(outcome)
            self._log_outcome(outcome)

        if self.cfg.RUN_SIGNALS_AFTER_INGEST:
            self._run_signals(summary)

        summary.timestamp = utcnow_iso()
        log.info(
            f"Ingest done: processed={summary.processed} skipped={summary.skipped} errors={summary.errors} "
            f"candidates={summary.total_candidates} new_txs={summary.new_transactions}"
        )
        return summary

    def process_candidate(self, index_url: str) -> Outcome:
        try:
            resolution = resolve_document_url(self.session, index_url, self.cfg, self.limiter)
            if not resolution.ok:
                return Skipped(index_url, resolution.reason or SkipReason.NO_DOCUMENT_LINK, resolution.detail)
            doc_url = str(resolution.url)

            try:
                xml_text = get_text(
                    self.session,
                    doc_url,
                    self.cfg.SEC_USER_AGENT,
                    self.limiter,
                    timeout=self.cfg.SEC_REQUEST_TIMEOUT_SECONDS,
                )
            except SecRequestError as e:
                return Skipped(index_url, SkipReason.DOCUMENT_FETCH_FAILED, str(e))

            extraction = extract_filing(xml_text, self.cfg)
            if not extraction.ok or extraction.filing is None:
                return Skipped(index_url, extraction.reason or SkipReason.SCHEMA_MISMATCH, extraction.detail)
        except Exception as e:
            return Errored(index_url, f"{type(e).__name__}: {e}")

        return self._store(index_url, doc_url, extraction.filing)

    # -----------------
    # Storage
    # -----------------

    def _store(self, index_url: str, doc_url: str, filing: ParsedFiling) -> Outcome:
        now = utcnow_iso()
        filing_date = utc_today().isoformat()
        issuer_cik = str(filing.issuer.cik)
        party_cik = str(filing.party.cik)
        new = 0
        try:
            upsert_issuer(self.conn, filing.issuer, now)
            upsert_party(self.conn, filing.party, now)
            for tx in filing.transactions:
                if insert_transaction(
                    self.conn,
                    issuer_cik=issuer_cik,
                    party_cik=party_cik,
                    role=filing.role,
                    tx=tx,
                    source_url=doc_url,
                    filing_index_url=index_url,
                    filing_date=filing_date,
                    now=now,
                ):
                    new += 1
            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            log.error(f"Storage failed for {index_url}: {type(e).__name__}: {e}")
            return Errored(index_url, f"storage: {type(e).__name__}: {e}")

        return Processed(
            url=index_url,
            document_url=doc_url,
            issuer_cik=issuer_cik,
            ticker=str(filing.issuer.ticker),
            new_transactions=new,
            duplicates=len(filing.transactions) - new,
        )

    # -----------------
    # Signals
    # -----------------

    def _run_signals(self, summary: IngestSummary) -> None:
        steps: List[tuple[str, Callable[[Any, Config], int]]] = [
            ("scores", update_all_scores),
            ("clusters", detect_cluster_buys),
        ]
        for name, step in steps:
            try:
                n = step(self.conn, self.cfg)
                self.conn.commit()
            except Exception as e:
                self.conn.rollback()
                log.error(f"Signal step {name} failed: {type(e).__name__}: {e}")
                summary.signal_errors.append(f"{name}: {type(e).__name__}: {e}")
                continue
            if name == "scores":
                summary.scores_updated = n
            else:
                summary.clusters_created = n

    def _log_outcome(self, outcome: Outcome) -> None:
        if isinstance(outcome, Processed):
            _debug(
                f"Processed {outcome.url} ticker={outcome.ticker} new={outcome.new_transactions} "
                f"dup={outcome.duplicates}"
            )
        elif isinstance(outcome, Skipped):
            log.warning(f"Skipped {outcome.url}: {outcome.reason.value} {outcome.detail}".rstrip())
        else:
            log.error(f"Error {outcome.url}: {outcome.cause}")


def run_ingest(cfg: Config, *, session: Any = None, limiter: Optional[RateLimiter] = None) -> IngestSummary:
    """One scheduled/manual run: open the store, ensure the schema, ingest, record the run."""
    with connect(cfg.DB_DSN) as conn:
        create_schema(conn)
        summary = IngestionPipeline(conn, cfg, session=session, limiter=limiter).ingest()
        upsert_app_config(conn, "ingest_last_run_utc", summary.timestamp)
        upsert_app_config(conn, "ingest_last_run_success", "1" if summary.success else "0")
    return summary
