from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

from insider_tracker.config import Config
from insider_tracker.models import SkipReason
from insider_tracker.sec.xmlutil import find_child, find_element, find_text, find_value_text, iter_children
from insider_tracker.util.normalization import clean_text, normalize_cik, normalize_iso_date, parse_float

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


# Form 4 transaction code -> (semantic type, counts as a buy)
TRANSACTION_CODES: Dict[str, Tuple[str, bool]] = {
    "P": ("Purchase", True),
    "S": ("Sale", False),
    "A": ("Grant", True),
    "M": ("Exercise", True),
}
OTHER_TRANSACTION = ("Other", False)


@dataclass(frozen=True)
class Issuer:
    cik: str | None
    ticker: str | None
    name: str | None


@dataclass(frozen=True)
class ReportingParty:
    cik: str | None
    name: str | None


@dataclass(frozen=True)
class TransactionRow:
    transaction_date: str
    transaction_code: str | None
    transaction_type: str
    is_purchase: bool
    shares: float
    price_per_share: float
    value: float
    ownership_after: float | None


@dataclass(frozen=True)
class ParsedFiling:
    issuer: Issuer
    party: ReportingParty
    role: str
    transactions: List[TransactionRow] = field(default_factory=list)


@dataclass(frozen=True)
class Extraction:
    filing: Optional[ParsedFiling] = None
    reason: Optional[SkipReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.filing is not None


def _to_bool(v: Optional[str]) -> bool:
    return v is not None and v.strip().lower() in ("1", "true")


def classify_role(
    *,
    is_officer: bool,
    officer_title: str | None,
    is_director: bool,
    is_ten_percent_owner: bool,
) -> str:
    """Role label at time of filing. Officer title > Director > 10% Owner > Other."""
    if is_officer and officer_title:
        return officer_title
    if is_director:
        return "Director"
    if is_ten_percent_owner:
        return "10% Owner"
    return "Other"


def map_transaction_code(code: str | None) -> Tuple[str, bool]:
    if not code:
        return OTHER_TRANSACTION
    return TRANSACTION_CODES.get(code.strip().upper(), OTHER_TRANSACTION)


def _parse_party(root: ET.Element) -> Tuple[ReportingParty, str]:
    # Joint filings list several reportingOwner blocks; the first is the filer of record.
    ro_el = find_child(root, "reportingOwner")
    ro_id = find_child(ro_el, "reportingOwnerId")
    rel = find_child(ro_el, "reportingOwnerRelationship")

    party = ReportingParty(
        cik=normalize_cik(find_text(ro_id, ["rptOwnerCik"])),
        name=clean_text(find_text(ro_id, ["rptOwnerName"])),
    )
    role = classify_role(
        is_officer=_to_bool(find_text(rel, ["isOfficer"])),
        officer_title=clean_text(find_text(rel, ["officerTitle"])),
        is_director=_to_bool(find_text(rel, ["isDirector"])),
        is_ten_percent_owner=_to_bool(find_text(rel, ["isTenPercentOwner"])),
    )
    return party, role


def _parse_transaction(tx_el: ET.Element) -> Optional[TransactionRow]:
    """One nonDerivativeTransaction -> row, or None when it fails the inclusion rule."""
    shares = parse_float(find_value_text(tx_el, ["transactionAmounts", "transactionShares"]))
    tx_date = normalize_iso_date(find_value_text(tx_el, ["transactionDate"]))
    # Grants and gifts legitimately report no price / a zero price.
    if shares is None or shares <= 0 or not tx_date:
        return None

    price = parse_float(find_value_text(tx_el, ["transactionAmounts", "transactionPricePerShare"])) or 0.0
    if price < 0:
        price = 0.0
    code = clean_text(find_text(tx_el, ["transactionCoding", "transactionCode"]))
    tx_type, is_purchase = map_transaction_code(code)
    ownership_after = parse_float(
        find_value_text(tx_el, ["postTransactionAmounts", "sharesOwnedFollowingTransaction"])
    )

    return TransactionRow(
        transaction_date=tx_date,
        transaction_code=code.upper() if code else None,
        transaction_type=tx_type,
        is_purchase=is_purchase,
        shares=shares,
        price_per_share=price,
        value=round(shares * price, 2),
        ownership_after=ownership_after,
    )


def parse_ownership_document(root: ET.Element) -> ParsedFiling:
    issuer_el = find_child(root, "issuer")
    ticker = clean_text(find_text(issuer_el, ["issuerTradingSymbol"]))
    issuer = Issuer(
        cik=normalize_cik(find_text(issuer_el, ["issuerCik"])),
        ticker=ticker.upper() if ticker else None,
        name=clean_text(find_text(issuer_el, ["issuerName"])),
    )
    party, role = _parse_party(root)

    rows: List[TransactionRow] = []
    total = 0
    nd_table = find_child(root, "nonDerivativeTable")
    for tx_el in iter_children(nd_table, "nonDerivativeTransaction"):
        total += 1
        row = _parse_transaction(tx_el)
        if row is not None:
            rows.append(row)

    _debug(
        f"Parsed ownershipDocument: issuer_cik={issuer.cik} symbol={issuer.ticker} "
        f"owner={party.cik} role={role} rows={len(rows)}/{total}"
    )
    return ParsedFiling(issuer=issuer, party=party, role=role, transactions=rows)


def extract_filing(xml_text: str, cfg: Config) -> Extraction:
    """Raw document text -> validated filing, or a skip.

    Documents without the ownershipDocument marker (an HTML error page, the XSL-rendered
    view, another schema) are skipped before any parsing is attempted.
    """
    marker = cfg.REQUIRED_ROOT_MARKER
    if not xml_text or marker not in xml_text:
        return Extraction(reason=SkipReason.SCHEMA_MISMATCH, detail=f"no {marker} element")

    try:
        root = ET.fromstring(xml_text.strip())
    except (ET.ParseError, ValueError) as e:
        return Extraction(reason=SkipReason.SCHEMA_MISMATCH, detail=f"malformed xml: {e}")

    doc = find_element(root, marker)
    if doc is None:
        return Extraction(reason=SkipReason.SCHEMA_MISMATCH, detail=f"no {marker} element")

    filing = parse_ownership_document(doc)

    missing: List[str] = []
    if not filing.issuer.ticker:
        missing.append("issuerTradingSymbol")
    if not filing.issuer.cik:
        missing.append("issuerCik")
    if not filing.party.name:
        missing.append("rptOwnerName")
    if not filing.party.cik:
        missing.append("rptOwnerCik")
    if missing:
        return Extraction(reason=SkipReason.NO_USABLE_TRANSACTIONS, detail="missing " + ", ".join(missing))
    if not filing.transactions:
        return Extraction(reason=SkipReason.NO_USABLE_TRANSACTIONS, detail="no qualifying non-derivative rows")

    return Extraction(filing=filing)
