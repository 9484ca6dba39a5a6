"""Manual trigger for the collector.

This is the only HTTP surface the collector ships: it runs one ingestion batch on demand
and returns the run summary. Reading stored data is left to a separate API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from insider_tracker.config import Config, load_config
from insider_tracker.db import init_db
from insider_tracker.sec.ingest import run_ingest

log = logging.getLogger(__name__)


class CollectResponse(BaseModel):
    success: bool
    timestamp: str
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    totalCandidates: int = 0
    feedEntries: int = 0
    newTransactions: int = 0
    skipReasons: Dict[str, int] = {}
    scoresUpdated: int = 0
    clustersCreated: int = 0
    signalErrors: list[str] | None = None
    error: str | None = None
    outcomes: list[Dict[str, Any]] | None = None


def create_app(cfg: Config | None = None) -> FastAPI:
    app = FastAPI(title="Insider Tracker Collector", version="0.1.0")
    app.state.cfg = cfg or load_config()

    @app.on_event("startup")
    def _on_startup() -> None:
        init_db(app.state.cfg.DB_DSN)

    @app.api_route("/collect", methods=["GET", "POST"], response_model=CollectResponse)
    def collect(detail: bool = Query(False, description="Include per-filing outcomes")) -> Dict[str, Any]:
        summary = run_ingest(app.state.cfg)
        body = summary.to_dict(include_outcomes=detail)
        if not summary.success:
            # Feed-level failure: surface the structured error to the caller.
            raise HTTPException(status_code=502, detail=body)
        return body

    return app


app = create_app()
