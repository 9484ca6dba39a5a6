import os
from dataclasses import dataclass
from typing import Tuple

# A local .env file, if present, fills in anything the environment does not set.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    pass

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})
_FALSY = frozenset({"0", "false", "no", "n", "off"})


def _env_bool(name: str, default: bool) -> bool:
    """1/true/yes/y/on and 0/false/no/n/off, case-insensitive. Anything else is the default."""
    v = (os.environ.get(name) or "").strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Comma-separated environment variable as a tuple of non-blank items."""
    items = tuple(p.strip() for p in os.environ.get(name, "").split(",") if p.strip())
    return items or default


@dataclass(frozen=True)
class Config:
    """Runtime configuration for the Form 4 collector.

    Every knob the pipeline reads lives here so a run is fully described by one value.
    Override via environment variables or a .env file.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set INSIDER_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: INSIDER_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("INSIDER_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("INSIDER_DB_PATH", "./insider_tracker.sqlite")
    )

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # -----------------
    # SEC
    # -----------------
    # EDGAR requires a descriptive User-Agent with a contact address.
    SEC_USER_AGENT: str = os.environ.get(
        "SEC_USER_AGENT",
        "InsiderTracker/0.1 (contact: you@example.com)",
    )

    # "Current filings" Atom feed, Form 4 only, most recent first.
    FEED_URL: str = os.environ.get(
        "FEED_URL",
        "https://www.sec.gov/cgi-bin/browse-edgar?action=getcurrent&type=4&count=100&output=atom",
    )

    # Per-run cap on candidate filings. Keeps one run inside the scheduler's time budget.
    MAX_FILINGS_PER_RUN: int = int(os.environ.get("MAX_FILINGS_PER_RUN", "20"))

    # SEC throttling (polite rate limiting): minimum gap between two SEC requests.
    SEC_MIN_INTERVAL_SECONDS: float = float(os.environ.get("SEC_MIN_INTERVAL_SECONDS", "0.12"))
    SEC_REQUEST_TIMEOUT_SECONDS: float = float(os.environ.get("SEC_REQUEST_TIMEOUT_SECONDS", "30"))

    # -----------------
    # Document resolution
    # -----------------
    # Directory segments EDGAR inserts to serve an XSL-rendered HTML view of the XML.
    STYLED_RENDERING_SEGMENTS: Tuple[str, ...] = _env_list(
        "STYLED_RENDERING_SEGMENTS",
        ("xslF345X01", "xslF345X02", "xslF345X03", "xslF345X04", "xslF345X05"),
    )
    # Filename fragments of the primary ownership document, checked first.
    PRIMARY_DOCUMENT_PATTERNS: Tuple[str, ...] = _env_list(
        "PRIMARY_DOCUMENT_PATTERNS",
        ("wf-form4", "doc4", "primary_doc"),
    )
    # Fallback XML links containing any of these are never the ownership document.
    EXCLUDED_DOCUMENT_MARKERS: Tuple[str, ...] = _env_list(
        "EXCLUDED_DOCUMENT_MARKERS",
        ("filingfees", "ex-", "exhibit"),
    )
    # Form-name banner of a Form 4 index page. Amendments read "Form 4/A</strong>".
    INDEX_FORM_MARKER: str = os.environ.get("INDEX_FORM_MARKER", "Form 4</strong>")
    DOCUMENT_EXTENSION: str = os.environ.get("DOCUMENT_EXTENSION", ".xml")
    REQUIRED_ROOT_MARKER: str = os.environ.get("REQUIRED_ROOT_MARKER", "ownershipDocument")

    # -----------------
    # Signals
    # -----------------
    SCORE_WINDOW_DAYS: int = int(os.environ.get("SCORE_WINDOW_DAYS", "30"))
    CLUSTER_WINDOW_DAYS: int = int(os.environ.get("CLUSTER_WINDOW_DAYS", "7"))

    # Recompute scores/clusters after each batch (disable for debugging ingestion alone).
    RUN_SIGNALS_AFTER_INGEST: bool = _env_bool("RUN_SIGNALS_AFTER_INGEST", True)

    # -----------------
    # Scheduling
    # -----------------
    # The hosted collector ran on a 10 minute cron.
    COLLECT_INTERVAL_SECONDS: int = int(os.environ.get("COLLECT_INTERVAL_SECONDS", "600"))


def load_config() -> Config:
    return Config()
