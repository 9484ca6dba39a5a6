import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from insider_tracker.config import load_config
from insider_tracker.util.log import configure_logging


def main() -> None:
    configure_logging(load_config().LOG_LEVEL)
    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "8000"))
    uvicorn.run("insider_tracker.api.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
