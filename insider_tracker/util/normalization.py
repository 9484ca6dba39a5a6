from __future__ import annotations

import math
import re
from typing import Optional

_ISO_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def normalize_cik(cik: str | None) -> str | None:
    """Normalize a CIK: digits only, left-pad to 10.

    Returns None if input is blank or contains no digits.
    """
    if cik is None:
        return None
    s = str(cik).strip()
    if not s:
        return None
    digits = "".join(ch for ch in s if ch.isdigit())
    if not digits:
        return None
    return digits.zfill(10)


def normalize_iso_date(raw: str | None) -> Optional[str]:
    """Reduce an ownership-document date to YYYY-MM-DD.

    Filers occasionally append a UTC offset ("2024-03-01-05:00"); grouping by calendar day
    needs the bare date.
    """
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    m = _ISO_DATE_PREFIX.match(s)
    if not m:
        return None
    return m.group(1)


def parse_float(s: Optional[str]) -> Optional[float]:
    if s is None:
        return None
    t = str(s).strip()
    if not t:
        return None
    # Remove commas and a leading currency sign
    t = t.replace(",", "").lstrip("$")
    try:
        v = float(t)
    except ValueError:
        return None
    # "NaN" and "inf" parse but are never a usable amount
    return v if math.isfinite(v) else None


def clean_text(s: Optional[str]) -> Optional[str]:
    """Collapse internal whitespace; blank becomes None."""
    if s is None:
        return None
    t = " ".join(str(s).split())
    return t if t else None
