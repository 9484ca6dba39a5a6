from __future__ import annotations

import logging


def configure_logging(level: str = "INFO") -> None:
    """Console logging for scripts: "[module] message", one line per event."""
    logging.basicConfig(
        level=getattr(logging, str(level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # requests/urllib3 connection chatter is noise at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
