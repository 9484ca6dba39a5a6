"""Insider Tracker - SEC Form 4 collector.

Pipeline (one batch per scheduler tick):
- Poll the EDGAR current-filings feed for Form 4 index pages.
- Resolve each index page to its raw ownershipDocument XML.
- Extract issuer, reporting owner, role and non-derivative transactions.
- Store idempotently, then recompute issuer scores and same-day cluster buys.

See DESIGN.md for the module map.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
