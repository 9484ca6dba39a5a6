"""Database schema for the Form 4 collector.

Runs on SQLite by default and on Postgres when a postgres:// DSN is configured.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') and transaction dates are ISO YYYY-MM-DD
TEXT, so window filters are plain string comparisons on both engines.

Idempotence lives in the constraints: issuers/parties are keyed by CIK, transactions carry
a natural-key UNIQUE constraint, and cluster_buys is unique per (issuer, date). All writers
use ON CONFLICT, never read-then-write.

The Postgres DDL is derived from the SQLite DDL (pragmas dropped, REAL and
AUTOINCREMENT keys rewritten).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- Entities (issuers). ticker/name are first-write-wins.
CREATE TABLE IF NOT EXISTS issuers (
    issuer_cik TEXT PRIMARY KEY,
    ticker TEXT NOT NULL,
    issuer_name TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_issuers_ticker ON issuers (ticker);

-- Reporting parties (insiders). name is first-write-wins.
CREATE TABLE IF NOT EXISTS parties (
    party_cik TEXT PRIMARY KEY,
    party_name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    issuer_cik TEXT NOT NULL,
    party_cik TEXT NOT NULL,
    transaction_date TEXT NOT NULL,
    transaction_type TEXT NOT NULL CHECK (transaction_type IN ('Purchase','Sale','Grant','Exercise','Other')),
    transaction_code TEXT,
    shares REAL NOT NULL CHECK (shares > 0),
    price_per_share REAL NOT NULL CHECK (price_per_share >= 0),
    transaction_value REAL NOT NULL,
    is_purchase INTEGER NOT NULL,
    insider_role TEXT,
    ownership_after REAL,
    source_url TEXT,
    filing_index_url TEXT,
    filing_date TEXT NOT NULL,
    ingested_at TEXT NOT NULL,
    UNIQUE (issuer_cik, party_cik, transaction_date, shares),
    FOREIGN KEY (issuer_cik) REFERENCES issuers(issuer_cik),
    FOREIGN KEY (party_cik) REFERENCES parties(party_cik)
);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions (transaction_date);
CREATE INDEX IF NOT EXISTS idx_transactions_issuer_date ON transactions (issuer_cik, transaction_date);

-- One row per issuer, recomputed wholesale on every scoring pass.
CREATE TABLE IF NOT EXISTS issuer_scores (
    issuer_cik TEXT PRIMARY KEY,
    score INTEGER NOT NULL CHECK (score >= 0 AND score <= 100),
    signal TEXT NOT NULL,
    num_buyers_30d INTEGER NOT NULL,
    num_sellers_30d INTEGER NOT NULL,
    total_buy_value_30d REAL NOT NULL,
    total_sell_value_30d REAL NOT NULL,
    num_transactions_30d INTEGER NOT NULL,
    last_updated TEXT NOT NULL,
    FOREIGN KEY (issuer_cik) REFERENCES issuers(issuer_cik)
);

-- Write-once: a (issuer, date) pair is recorded the first time it qualifies.
CREATE TABLE IF NOT EXISTS cluster_buys (
    cluster_id INTEGER PRIMARY KEY AUTOINCREMENT,
    issuer_cik TEXT NOT NULL,
    cluster_date TEXT NOT NULL,
    num_insiders INTEGER NOT NULL,
    num_transactions INTEGER NOT NULL,
    total_value REAL NOT NULL,
    total_shares REAL NOT NULL,
    score INTEGER NOT NULL,
    detected_at TEXT NOT NULL,
    UNIQUE (issuer_cik, cluster_date),
    FOREIGN KEY (issuer_cik) REFERENCES issuers(issuer_cik)
);
CREATE INDEX IF NOT EXISTS idx_cluster_buys_date ON cluster_buys (cluster_date);
"""


# (pattern, replacement) applied in order to the SQLite DDL
_POSTGRES_REWRITES = (
    (r"(?im)^\s*PRAGMA .*$\n?", ""),
    (r"\bREAL\b", "DOUBLE PRECISION"),
    (r"(?i)INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT", "BIGSERIAL PRIMARY KEY"),
)


def _sqlite_to_postgres(ddl: str) -> str:
    out = ddl
    for pattern, repl in _POSTGRES_REWRITES:
        out = re.sub(pattern, repl, out)
    return out


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    return SCHEMA_POSTGRES if (dialect or "").lower().startswith("post") else SCHEMA_SQLITE
