from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


class SecRequestError(RuntimeError):
    """An SEC request failed: network error or non-2xx status."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class RateLimiter:
    """Fixed-interval gate: consecutive wait() calls return at least min_interval apart.

    One instance is owned by each pipeline run, so pacing does not leak across runs or
    depend on module globals.
    """

    def __init__(
        self,
        min_interval_seconds: float | None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval_seconds = max(0.0, float(min_interval_seconds or 0.0))
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> float:
        """Block until the next request may go out. Returns the seconds slept."""
        slept = 0.0
        if self._last is not None and self.min_interval_seconds > 0:
            dt = self._clock() - self._last
            if dt < self.min_interval_seconds:
                slept = self.min_interval_seconds - dt
                self._sleep(slept)
        self._last = self._clock()
        return slept


def new_session(user_agent: str) -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": user_agent})
    return s


def get_text(
    session: Any,
    url: str,
    user_agent: str,
    limiter: RateLimiter | None = None,
    *,
    accept: str | None = None,
    timeout: float = 30,
) -> str:
    """GET a URL from SEC and return its body.

    Raises SecRequestError on network failure or any non-2xx status.
    """
    _debug(f"GET {url}")
    if limiter is not None:
        limiter.wait()

    headers = {"User-Agent": user_agent}
    if accept:
        headers["Accept"] = accept

    try:
        r = session.get(url, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise SecRequestError(url, f"SEC request failed: {e}") from e

    if not 200 <= r.status_code < 300:
        raise SecRequestError(
            url,
            f"SEC request failed {r.status_code}: {(r.text or '')[:200]}",
            status_code=r.status_code,
        )
    return r.text or ""
