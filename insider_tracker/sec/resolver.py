"""Filing index page -> absolute URL of the raw ownershipDocument XML.

EDGAR index pages link the primary document through an XSL rendering directory
(e.g. /Archives/edgar/data/882184/000112760224012345/xslF345X05/wf-form4_1.xml). Fetching
that path returns a human-readable HTML view; dropping the xslF345X0N segment gives the
machine-readable XML stored at the same accession path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from insider_tracker.config import Config
from insider_tracker.models import SkipReason
from insider_tracker.sec.edgar import RateLimiter, SecRequestError, get_text

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


@dataclass(frozen=True)
class Resolution:
    url: Optional[str] = None
    reason: Optional[SkipReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.url is not None


def strip_styled_segments(href: str, segments: Iterable[str]) -> str:
    """Remove every path component equal to a styled-rendering directory name.

    Works on full URLs (only the path is touched), host-absolute paths and relative paths.
    """
    styled = {s.lower() for s in segments if s}
    if not styled:
        return href

    def _strip_path(path: str) -> str:
        parts = path.split("/")
        kept = [p for p in parts if p.lower() not in styled]
        return "/".join(kept)

    if "://" in href:
        parts = urlsplit(href)
        return urlunsplit((parts.scheme, parts.netloc, _strip_path(parts.path), parts.query, parts.fragment))
    return _strip_path(href)


def absolutize(href: str, index_url: str) -> str:
    """Turn a (stripped) document href into an absolute URL.

    - "/path"            -> scheme://host of the index page + path
    - "http(s)://..."    -> unchanged
    - anything else      -> relative to the index page's directory
    """
    if href.startswith("/") and not href.startswith("//"):
        base = urlsplit(index_url)
        return f"{base.scheme}://{base.netloc}{href}"
    if href.lower().startswith(("http://", "https://")):
        return href
    return urljoin(index_url, href)


def _href_path(href: str) -> str:
    return href.split("#", 1)[0].split("?", 1)[0].lower()


def _anchor_hrefs(html: str) -> List[str]:
    soup = BeautifulSoup(html or "", "html.parser")
    out: List[str] = []
    for a in soup.find_all("a", href=True):
        href = str(a.get("href") or "").strip()
        if href:
            out.append(href)
    return out


def find_document_href(html: str, cfg: Config) -> Tuple[Optional[str], Optional[SkipReason], str]:
    """Pick the ownership document link out of an index page.

    Priority:
      1) an anchor whose href names the primary document (wf-form4 / doc4 / primary_doc)
         and has the document extension;
      2) the first anchor with the document extension that is not a fee schedule or exhibit.

    Returns (href, None, "") on success, else (None, reason, detail).
    """
    hrefs = _anchor_hrefs(html)
    ext = cfg.DOCUMENT_EXTENSION.lower()
    primary = [p.lower() for p in cfg.PRIMARY_DOCUMENT_PATTERNS]
    excluded = [m.lower() for m in cfg.EXCLUDED_DOCUMENT_MARKERS]

    primary_other_type: Optional[str] = None
    for href in hrefs:
        path = _href_path(href)
        if not any(p in path for p in primary):
            continue
        if path.endswith(ext):
            return href, None, ""
        if primary_other_type is None:
            primary_other_type = href

    for href in hrefs:
        path = _href_path(href)
        if not path.endswith(ext):
            continue
        if any(m in href.lower() for m in excluded):
            continue
        return href, None, ""

    if primary_other_type is not None:
        return None, SkipReason.WRONG_DOCUMENT_TYPE, f"primary document is not {ext}: {primary_other_type}"
    return None, SkipReason.NO_DOCUMENT_LINK, f"no {ext} document among {len(hrefs)} links"


def document_url_from_href(href: str, index_url: str, cfg: Config) -> str:
    return absolutize(strip_styled_segments(href, cfg.STYLED_RENDERING_SEGMENTS), index_url)


def resolve_document_url(
    session: Any,
    index_url: str,
    cfg: Config,
    limiter: RateLimiter | None = None,
) -> Resolution:
    """Fetch a filing index page and return the raw document URL, or a skip reason."""
    try:
        html = get_text(
            session,
            index_url,
            cfg.SEC_USER_AGENT,
            limiter,
            timeout=cfg.SEC_REQUEST_TIMEOUT_SECONDS,
        )
    except SecRequestError as e:
        return Resolution(reason=SkipReason.INDEX_FETCH_FAILED, detail=str(e))

    marker = cfg.INDEX_FORM_MARKER
    if marker and marker not in html:
        return Resolution(reason=SkipReason.WRONG_DOCUMENT_TYPE, detail=f"index page lacks {marker!r}")

    href, reason, detail = find_document_href(html, cfg)
    if href is None:
        return Resolution(reason=reason, detail=detail)

    url = document_url_from_href(href, index_url, cfg)
    if url != href:
        _debug(f"Resolved {href} -> {url}")
    return Resolution(url=url)
