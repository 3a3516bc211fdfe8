from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Sequence
from urllib.parse import urlparse

from sweet_shop.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'. Anything that isn't a postgres URL is a SQLite path."""
    s = (dsn or "").strip()
    try:
        scheme = urlparse(s).scheme.lower()
    except Exception:
        scheme = ""
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    return "sqlite"


def _sqlite_path(dsn: str) -> str:
    s = (dsn or "").strip()
    # Support sqlite:///path style
    if s.lower().startswith("sqlite:///"):
        s = s[len("sqlite:///") :]
    return s or "./sweet_shop.sqlite"


def _qmark_to_pct(sql: str) -> str:
    """Rewrite SQLite `?` placeholders as psycopg2 `%s`.

    Quoted literals are copied through untouched. Not a SQL parser, but the queries in
    this codebase only use simple single-quoted literals.
    """
    out: List[str] = []
    quote: str | None = None
    for ch in sql:
        if quote is not None:
            out.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
        elif ch == "?":
            out.append("%s")
        else:
            out.append(ch)
    return "".join(out)


class PGCursor:
    def __init__(self, cur: Any):
        self._cur = cur

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> "PGCursor":
        self._cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return self

    def fetchone(self) -> Any:
        return self._cur.fetchone()

    def fetchall(self) -> Any:
        return self._cur.fetchall()

    @property
    def rowcount(self) -> int:
        return int(self._cur.rowcount or 0)


class PGConnection:
    """Make a psycopg2 connection quack like a sqlite3 connection (conn.execute(...).fetchone())."""

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> PGCursor:
        return PGCursor(self._conn.cursor()).execute(sql, params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


def _open(dsn: str) -> Any:
    if detect_dialect(dsn) == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except Exception as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install psycopg2-binary and try again."
            ) from e

        # RealDictCursor makes fetchone()/fetchall() rows act like dicts.
        return PGConnection(psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor))

    path = _sqlite_path(dsn)
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # The API serves requests from a threadpool; WAL lets readers proceed during writes.
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")  # 5s
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Open a connection for one unit of work.

    Commits when the block exits cleanly, rolls back (and re-raises) otherwise.
    Rows support `row["column"]` and `dict(row)` on both engines.
    """
    conn = _open(db_dsn)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = detect_dialect(db_dsn)
    # Postgres DSNs carry credentials; only the SQLite path is worth printing.
    _debug(f"Initializing DB ({dialect}) at {db_dsn if dialect == 'sqlite' else '<dsn>'}")
    with connect(db_dsn) as conn:
        ddl = get_schema_sql(dialect)
        if dialect == "postgres":
            # Naive split is fine: the schema has no semicolons inside statements.
            for stmt in (s.strip() for s in ddl.split(";")):
                if stmt:
                    conn.execute(stmt)
        else:
            conn.executescript(ddl)


def fetch_returning(cur: Any) -> Any:
    """First row of an `INSERT/UPDATE ... RETURNING` cursor, or None.

    Drains the cursor: sqlite keeps a write statement open until it has been stepped to completion.
    """
    rows = cur.fetchall()
    return rows[0] if rows else None


def is_integrity_error(exc: BaseException) -> bool:
    """True for a constraint violation from either driver.

    psycopg2 is only imported for Postgres DSNs, so match on the DB-API class name
    (`sqlite3.IntegrityError`, `psycopg2.IntegrityError` and its subclasses).
    """
    return any(cls.__name__ == "IntegrityError" for cls in type(exc).__mro__)
