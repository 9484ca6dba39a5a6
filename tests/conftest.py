"""Shared fixtures: temp SQLite store, zero-delay config, fake SEC session, sample documents."""

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

import pytest
import requests

from insider_tracker.config import load_config
from insider_tracker.db import connect, create_schema
from insider_tracker.sec.parser import Issuer, ReportingParty, TransactionRow, map_transaction_code
from insider_tracker.sec.store import insert_transaction, upsert_issuer, upsert_party

FEED_URL = "https://www.sec.gov/cgi-bin/browse-edgar?action=getcurrent&type=4&count=100&output=atom"
# Attribute-escaped for embedding in feed XML.
_FEED_URL_ATTR = FEED_URL.replace("&", "&amp;")

GILD_INDEX = "https://www.sec.gov/Archives/edgar/data/882095/000088209524000012/0000882095-24-000012-index.htm"
GILD_STYLED_HREF = "/Archives/edgar/data/882095/000088209524000012/xslF345X05/wf-form4_170932.xml"
GILD_XML = "https://www.sec.gov/Archives/edgar/data/882095/000088209524000012/wf-form4_170932.xml"


class FakeResponse:
    def __init__(self, status_code: int, text: str):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """requests.Session stand-in: url -> (status, body) or an exception to raise."""

    def __init__(self, routes: Optional[Dict[str, object]] = None):
        self.routes: Dict[str, object] = dict(routes or {})
        self.calls: List[str] = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, "Not Found")
        if isinstance(route, Exception):
            raise route
        status, body = route
        return FakeResponse(status, body)


def atom_feed(index_urls: Sequence[str], extra_entries: str = "") -> str:
    entries = "".join(
        f"""
  <entry>
    <title>4 - Filing {i}</title>
    <link rel="alternate" type="text/html" href="{u}"/>
    <summary type="html">Filed: 2024-03-01</summary>
    <updated>2024-03-01T16:30:00-05:00</updated>
    <category scheme="https://www.sec.gov/" label="form type" term="4"/>
    <id>urn:tag:sec.gov,2008:accession-number={i}</id>
  </entry>"""
        for i, u in enumerate(index_urls)
    )
    return f"""<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Latest Filings - Thu, 01 Mar 2024 16:30:00 EST</title>
  <link rel="alternate" href="/cgi-bin/browse-edgar?action=getcurrent"/>
  <link rel="self" href="{_FEED_URL_ATTR}"/>
  <id>https://www.sec.gov/cgi-bin/browse-edgar?action=getcurrent</id>{entries}{extra_entries}
</feed>"""


def index_page(*hrefs: str, form: str = "4") -> str:
    rows = "".join(
        f'<tr><td scope="row">{i + 1}</td><td scope="row">FORM 4</td>'
        f'<td scope="row"><a href="{h}">{h.rsplit("/", 1)[-1]}</a></td><td scope="row">4</td></tr>'
        for i, h in enumerate(hrefs)
    )
    return f"""<html><head><title>EDGAR Filing Documents for 0000882095-24-000012</title></head>
<body>
<div id="formName"><strong>Form {form}</strong> - Statement of changes in beneficial ownership of securities:</div>
<a href="/cgi-bin/browse-edgar?action=getcompany">Company search</a>
<table class="tableFile" summary="Document Format Files">
<tr><th>Seq</th><th>Description</th><th>Document</th><th>Type</th></tr>
{rows}
</table>
<a href="/Archives/edgar/data/882095/000088209524000012/0000882095-24-000012.txt">0000882095-24-000012.txt</a>
</body></html>"""


def tx_xml(
    *,
    date: str = "2024-03-01",
    code: str = "P",
    shares: str = "2500",
    price: Optional[str] = "118.08",
    owned_after: str = "110000",
    price_footnote_first: bool = True,
) -> str:
    if price is None:
        price_el = '<transactionPricePerShare><footnoteId id="F2"/></transactionPricePerShare>'
    elif price_footnote_first:
        price_el = f'<transactionPricePerShare><footnoteId id="F1"/><value>{price}</value></transactionPricePerShare>'
    else:
        price_el = f'<transactionPricePerShare><value>{price}</value><footnoteId id="F1"/></transactionPricePerShare>'
    return f"""
    <nonDerivativeTransaction>
      <securityTitle><value>Common Stock</value></securityTitle>
      <transactionDate><value>{date}</value></transactionDate>
      <transactionCoding>
        <transactionFormType>4</transactionFormType>
        <transactionCode>{code}</transactionCode>
        <equitySwapInvolved>0</equitySwapInvolved>
      </transactionCoding>
      <transactionAmounts>
        <transactionShares><value>{shares}</value></transactionShares>
        {price_el}
        <transactionAcquiredDisposedCode><value>A</value></transactionAcquiredDisposedCode>
      </transactionAmounts>
      <postTransactionAmounts>
        <sharesOwnedFollowingTransaction><value>{owned_after}</value></sharesOwnedFollowingTransaction>
      </postTransactionAmounts>
      <ownershipNature><directOrIndirectOwnership><value>D</value></directOrIndirectOwnership></ownershipNature>
    </nonDerivativeTransaction>"""


def ownership_xml(
    *,
    issuer_cik: str = "0000882095",
    issuer_name: str = "GILEAD SCIENCES, INC.",
    ticker: str = "GILD",
    owner_cik: str = "0001234567",
    owner_name: str = "Dickinson Andrew D",
    is_director: str = "0",
    is_officer: str = "1",
    is_ten_percent_owner: str = "0",
    officer_title: Optional[str] = "CFO",
    rows: Sequence[str] = (),
) -> str:
    title = f"<officerTitle>{officer_title}</officerTitle>" if officer_title is not None else ""
    body = "".join(rows) if rows else tx_xml()
    return f"""<?xml version="1.0"?>
<ownershipDocument>
  <schemaVersion>X0508</schemaVersion>
  <documentType>4</documentType>
  <periodOfReport>2024-03-01</periodOfReport>
  <issuer>
    <issuerCik>{issuer_cik}</issuerCik>
    <issuerName>{issuer_name}</issuerName>
    <issuerTradingSymbol>{ticker}</issuerTradingSymbol>
  </issuer>
  <reportingOwner>
    <reportingOwnerId>
      <rptOwnerCik>{owner_cik}</rptOwnerCik>
      <rptOwnerName>{owner_name}</rptOwnerName>
    </reportingOwnerId>
    <reportingOwnerRelationship>
      <isDirector>{is_director}</isDirector>
      <isOfficer>{is_officer}</isOfficer>
      <isTenPercentOwner>{is_ten_percent_owner}</isTenPercentOwner>
      {title}
    </reportingOwnerRelationship>
  </reportingOwner>
  <nonDerivativeTable>{body}
  </nonDerivativeTable>
  <footnotes>
    <footnote id="F1">Weighted average price.</footnote>
    <footnote id="F2">Shares granted under the 2022 plan.</footnote>
  </footnotes>
</ownershipDocument>"""


@pytest.fixture
def cfg(tmp_path):
    return replace(
        load_config(),
        DB_DSN=str(tmp_path / "insider_tracker_test.sqlite"),
        FEED_URL=FEED_URL,
        MAX_FILINGS_PER_RUN=20,
        SEC_MIN_INTERVAL_SECONDS=0.0,
        STYLED_RENDERING_SEGMENTS=("xslF345X01", "xslF345X02", "xslF345X03", "xslF345X04", "xslF345X05"),
        PRIMARY_DOCUMENT_PATTERNS=("wf-form4", "doc4", "primary_doc"),
        EXCLUDED_DOCUMENT_MARKERS=("filingfees", "ex-", "exhibit"),
        INDEX_FORM_MARKER="Form 4</strong>",
        DOCUMENT_EXTENSION=".xml",
        REQUIRED_ROOT_MARKER="ownershipDocument",
        SCORE_WINDOW_DAYS=30,
        CLUSTER_WINDOW_DAYS=7,
        RUN_SIGNALS_AFTER_INGEST=True,
    )


@pytest.fixture
def conn(cfg):
    with connect(cfg.DB_DSN) as c:
        create_schema(c)
        yield c


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def network_error():
    return requests.ConnectionError("connection reset by peer")


def seed_transaction(
    conn,
    *,
    issuer_cik: str = "0000882095",
    ticker: str = "GILD",
    party_cik: str = "0001234567",
    role: str = "CFO",
    date: str = "2024-03-01",
    code: str = "P",
    shares: float = 1000,
    price: float = 10.0,
) -> bool:
    """Write one stored transaction (plus its issuer and party) without going through the network."""
    tx_type, is_purchase = map_transaction_code(code)
    upsert_issuer(conn, Issuer(cik=issuer_cik, ticker=ticker, name=None), "2024-03-01T00:00:00Z")
    upsert_party(conn, ReportingParty(cik=party_cik, name=f"Party {party_cik}"), "2024-03-01T00:00:00Z")
    row = TransactionRow(
        transaction_date=date,
        transaction_code=code,
        transaction_type=tx_type,
        is_purchase=is_purchase,
        shares=shares,
        price_per_share=price,
        value=round(shares * price, 2),
        ownership_after=None,
    )
    written = insert_transaction(
        conn,
        issuer_cik=issuer_cik,
        party_cik=party_cik,
        role=role,
        tx=row,
        source_url="https://www.sec.gov/Archives/edgar/data/x/doc4.xml",
        filing_index_url="https://www.sec.gov/Archives/edgar/data/x/x-index.htm",
        filing_date=date,
        now="2024-03-01T00:00:00Z",
    )
    conn.commit()
    return written
