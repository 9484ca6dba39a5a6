from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence
from urllib.parse import urlparse

from insider_tracker.schema import get_schema_sql

log = logging.getLogger(__name__)


def _debug(msg: str) -> None:
    log.debug(msg)


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'. Anything that is not a postgres URL is a SQLite path."""
    s = (dsn or "").strip()
    try:
        scheme = urlparse(s).scheme.lower()
    except ValueError:
        scheme = ""
    return "postgres" if scheme in ("postgres", "postgresql") else "sqlite"


# Quoted literals pass through untouched; only bare ? and % are rewritten.
_SQL_TOKENS = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\?|%)")


def _qmark_to_pct(sql: str) -> str:
    """Rewrite sqlite qmark placeholders for psycopg2 (? -> %s, literal % -> %%)."""

    def _sub(m: re.Match) -> str:
        tok = m.group(0)
        if tok == "?":
            return "%s"
        if tok == "%":
            return "%%"
        return tok.replace("%", "%%")

    return _SQL_TOKENS.sub(_sub, sql)


class PGConnection:
    """psycopg2 connection with the sqlite3 surface the collector uses.

    execute() takes qmark SQL and returns the (RealDictCursor) cursor, so fetchone(),
    fetchall() and rowcount read the same as on sqlite3.
    """

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        cur = self._conn.cursor()
        cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return cur

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


def dialect_of(conn: Any) -> str:
    return getattr(conn, "dialect", "sqlite")


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Connect to SQLite or Postgres with sensible defaults.

    - SQLite: uses WAL + NORMAL sync.
    - Postgres: uses psycopg2 (RealDictCursor) so rows behave like dicts.

    Commits on clean exit, rolls back on exception. Callers may also commit/rollback
    mid-way to isolate units of work.
    """
    dsn = (db_dsn or "").strip()
    dialect = _detect_dialect(dsn)

    if dialect == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except ImportError as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install psycopg2-binary (pip install 'insider-tracker[postgres]') and try again."
            ) from e

        raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
        conn = PGConnection(raw)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        return

    # Support sqlite:///path style
    if dsn.lower().startswith("sqlite:///"):
        dsn = dsn[len("sqlite:///") :]

    if dsn != ":memory:":
        Path(dsn).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(dsn, timeout=30)
    conn.row_factory = sqlite3.Row
    # Overlapping runs (scheduler + manual trigger) may share the file.
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")  # 5s
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = _detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    with connect(db_dsn) as conn:
        create_schema(conn)


def create_schema(conn: Any) -> None:
    dialect = dialect_of(conn)
    ddl = get_schema_sql(dialect)
    if dialect == "postgres":
        # Ensure only one process runs schema DDL at a time.
        conn.execute("SELECT pg_advisory_lock(2147483647);")
        try:
            # Execute multi-statement DDL (naive split is OK for our schema)
            for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                conn.execute(stmt)
        finally:
            conn.execute("SELECT pg_advisory_unlock(2147483647);")
        return

    # SQLite can run it in one go
    conn.executescript(ddl)


def upsert_app_config(conn: Any, key: str, value: str) -> None:
    """Upsert a simple key/value config entry."""
    conn.execute(
        """
        INSERT INTO app_config (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def get_app_config(conn: Any, key: str) -> Optional[str]:
    row = conn.execute("SELECT value FROM app_config WHERE key=?", (key,)).fetchone()
    if row is None:
        return None
    return str(row["value"])
