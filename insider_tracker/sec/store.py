from __future__ import annotations

from typing import Any

from insider_tracker.sec.parser import Issuer, ReportingParty, TransactionRow


def upsert_issuer(conn: Any, issuer: Issuer, now: str) -> None:
    """Create the issuer on first sighting. Ticker and name are never overwritten once set."""
    conn.execute(
        """
        INSERT INTO issuers (issuer_cik, ticker, issuer_name, created_at)
        VALUES (?,?,?,?)
        ON CONFLICT(issuer_cik) DO UPDATE SET
            -- Only fill a name that was missing on first write
            issuer_name=COALESCE(issuers.issuer_name, excluded.issuer_name)
        """,
        (issuer.cik, issuer.ticker, issuer.name, now),
    )


def upsert_party(conn: Any, party: ReportingParty, now: str) -> None:
    conn.execute(
        """
        INSERT INTO parties (party_cik, party_name, created_at)
        VALUES (?,?,?)
        ON CONFLICT(party_cik) DO NOTHING
        """,
        (party.cik, party.name, now),
    )


def insert_transaction(
    conn: Any,
    *,
    issuer_cik: str,
    party_cik: str,
    role: str,
    tx: TransactionRow,
    source_url: str,
    filing_index_url: str,
    filing_date: str,
    now: str,
) -> bool:
    """Insert one transaction guarded by its natural key.

    Returns True if a row was written, False if (issuer, party, date, shares) already existed.
    """
    cur = conn.execute(
        """
        INSERT INTO transactions (
            issuer_cik, party_cik, transaction_date, transaction_type, transaction_code,
            shares, price_per_share, transaction_value, is_purchase,
            insider_role, ownership_after, source_url, filing_index_url,
            filing_date, ingested_at
        ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
        ON CONFLICT(issuer_cik, party_cik, transaction_date, shares) DO NOTHING
        """,
        (
            issuer_cik,
            party_cik,
            tx.transaction_date,
            tx.transaction_type,
            tx.transaction_code,
            tx.shares,
            tx.price_per_share,
            tx.value,
            1 if tx.is_purchase else 0,
            role,
            tx.ownership_after,
            source_url,
            filing_index_url,
            filing_date,
            now,
        ),
    )
    return cur.rowcount == 1
