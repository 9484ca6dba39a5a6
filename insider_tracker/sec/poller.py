from __future__ import annotations

import logging
from typing import Any, List, Set, Tuple
from urllib.parse import urlparse
from xml.etree import ElementTree as ET

from bs4 import BeautifulSoup

from insider_tracker.config import Config
from insider_tracker.sec.edgar import RateLimiter, SecRequestError, get_text
from insider_tracker.sec.xmlutil import strip_ns

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


class FeedError(RuntimeError):
    """The feed could not be fetched (network error or non-2xx). Fatal for the run."""


def _is_filing_index_url(href: str) -> bool:
    try:
        parsed = urlparse(href)
    except ValueError:
        return False
    host = (parsed.hostname or "").lower()
    if parsed.scheme not in ("http", "https") or not (host == "sec.gov" or host.endswith(".sec.gov")):
        return False
    return "-index.htm" in parsed.path.lower()


def _feed_links(feed_text: str) -> List[Tuple[str, str]]:
    """(rel, href) of every link element, in document order.

    A feed that is not well-formed XML (an unescaped & in one entry is enough) is read
    again with a tolerant HTML parser so one broken entry does not cost the whole batch.
    """
    try:
        root = ET.fromstring(feed_text)
    except ET.ParseError as e:
        log.warning(f"Feed is not well-formed XML ({e}); reading links leniently")
        soup = BeautifulSoup(feed_text or "", "html.parser")
        links = []
        for el in soup.find_all("link"):
            # bs4 splits rel into a list of tokens
            rel = el.get("rel") or []
            links.append((" ".join(rel) if isinstance(rel, list) else str(rel), str(el.get("href") or "")))
        return links

    return [
        (el.attrib.get("rel") or "", el.attrib.get("href") or "")
        for el in root.iter()
        if strip_ns(el.tag) == "link"
    ]


def extract_index_urls(feed_text: str) -> List[str]:
    """Return filing index-page URLs from an EDGAR Atom feed, in feed order.

    Only <link rel="alternate" href=...> elements pointing at an sec.gov "-index.htm(l)"
    page count. Anything else (missing href, other rel, other targets) is skipped.
    Duplicates keep their first position.
    """
    out: List[str] = []
    seen: Set[str] = set()
    for rel, href in _feed_links(feed_text):
        if (rel.strip() or "alternate").lower() != "alternate":
            continue
        href = href.strip()
        if not href or not _is_filing_index_url(href):
            continue
        if href in seen:
            continue
        seen.add(href)
        out.append(href)
    return out


def fetch_candidate_urls(
    session: Any,
    cfg: Config,
    limiter: RateLimiter | None = None,
) -> Tuple[int, List[str]]:
    """Fetch the current-filings feed and return (feed_entries, capped candidate URLs).

    Raises FeedError if the feed cannot be fetched.
    """
    url = cfg.FEED_URL
    if not url:
        raise FeedError("FEED_URL is not set")

    _debug(f"Polling SEC feed: {url}")
    try:
        text = get_text(
            session,
            url,
            cfg.SEC_USER_AGENT,
            limiter,
            accept="application/atom+xml",
            timeout=cfg.SEC_REQUEST_TIMEOUT_SECONDS,
        )
    except SecRequestError as e:
        raise FeedError(f"SEC feed fetch failed: {e}") from e

    urls = extract_index_urls(text)
    cap = max(0, int(cfg.MAX_FILINGS_PER_RUN))
    log.info(f"Feed returned {len(urls)} filing index links; taking {min(cap, len(urls))}")
    return len(urls), urls[:cap]
