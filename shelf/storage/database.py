"""Pooled Postgres access for the catalog store, plus the schema migrator.

Connections are tracked per thread. The first statement a thread runs borrows
a connection from the pool; commit() and rollback() end the transaction and
give it back. FastAPI serves sync routes from a threadpool and the backfill
may fan out to worker threads, so no two threads ever hold the same one.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import psycopg
from psycopg.pq import TransactionStatus
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from shelf.config import DatabaseConfig

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS _migrations (
        id SERIAL PRIMARY KEY,
        filename VARCHAR(255) UNIQUE NOT NULL,
        applied_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

# Transaction states that mean a borrowed connection still has work pending.
_OPEN_STATES = (TransactionStatus.INTRANS, TransactionStatus.INERROR)


class Database:
    """Thread-aware wrapper around a psycopg ConnectionPool."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: ConnectionPool | None = None
        self._local = threading.local()

    def connect(self) -> None:
        self._pool = ConnectionPool(
            self.config.dsn,
            min_size=self.config.pool_min,
            max_size=self.config.pool_max,
            kwargs={"row_factory": dict_row, "autocommit": False},
            open=True,
        )
        self._pool.wait()
        logger.info(
            "Catalog database at %s:%s/%s (pool %d-%d)",
            self.config.host, self.config.port, self.config.name,
            self.config.pool_min, self.config.pool_max,
        )

    def close(self) -> None:
        self._release()
        if self._pool:
            self._pool.close()
            self._pool = None

    def _held(self) -> psycopg.Connection | None:
        held = getattr(self._local, "conn", None)
        if held is None or held.closed:
            return None
        return held

    @property
    def conn(self) -> psycopg.Connection:
        """The calling thread's connection, borrowed lazily.

        If an earlier statement failed and nobody rolled back, the aborted
        transaction is discarded here so the connection is usable again.
        """
        held = self._held()
        if held is not None:
            if held.info.transaction_status == TransactionStatus.INERROR:
                logger.warning("Discarding aborted transaction on borrowed connection")
                held.rollback()
            return held

        if self._pool is None:
            raise RuntimeError("Database pool is closed; call connect() before querying")
        self._local.conn = self._pool.getconn()
        return self._local.conn

    def _release(self) -> None:
        held = getattr(self._local, "conn", None)
        if held is None or self._pool is None:
            return
        try:
            self._pool.putconn(held)
        except Exception:
            logger.warning("Pool refused returned connection", exc_info=True)
        self._local.conn = None

    def _fetch(self, query: str, params, one: bool):
        with self.conn.cursor() as cur:
            cur.execute(query, params)
            if cur.description is None:
                return None if one else []
            return cur.fetchone() if one else cur.fetchall()

    def execute(self, query: str, params: tuple | list | None = None) -> list[dict]:
        return self._fetch(query, params, one=False)

    def execute_one(self, query: str, params: tuple | list | None = None) -> dict | None:
        return self._fetch(query, params, one=True)

    def commit(self) -> None:
        self.conn.commit()
        self._release()

    def rollback(self) -> None:
        self.conn.rollback()
        self._release()

    def release_if_held(self) -> None:
        """Give back a connection a read-only request left mid-transaction."""
        held = self._held()
        if held is None:
            return
        if held.info.transaction_status in _OPEN_STATES:
            held.rollback()
        self._release()

    # ── Migrations ───────────────────────────────────────────

    def _applied_migrations(self) -> set[str]:
        self.execute(_LEDGER_DDL)
        self.commit()
        return {row["filename"] for row in self.execute("SELECT filename FROM _migrations")}

    def _apply_migration(self, path: Path) -> None:
        logger.info("Migrating schema: %s", path.name)
        try:
            self.execute(path.read_text())
            self.execute("INSERT INTO _migrations (filename) VALUES (%s)", (path.name,))
            self.commit()
        except Exception:
            self.rollback()
            logger.exception("Schema migration %s failed; nothing from it was kept", path.name)
            raise

    def run_migrations(self) -> None:
        """Bring the schema up to date with the SQL files under MIGRATIONS_DIR.

        Files run in filename order, each in its own transaction together with
        its ledger row, so a failure leaves earlier files applied and this one
        absent.
        """
        applied = self._applied_migrations()
        pending = [p for p in sorted(MIGRATIONS_DIR.glob("*.sql")) if p.name not in applied]
        for path in pending:
            self._apply_migration(path)

        self.rollback()
        if pending:
            logger.info("Schema migrated: %d file(s) applied", len(pending))
        else:
            logger.info("Schema already current (%d migration(s) on record)", len(applied))
