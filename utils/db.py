"""
Database utilities for SQLite operations.

Provides the `Store` handle used by every entity service, connection
management and schema initialization.
"""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Mapping, Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from utils.config import settings
from utils.errors import Conflict, StoreError
from utils.query import ListQuery, PageInfo, PageRequest, Statement

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = ("database is locked", "database is busy", "database table is locked", "unable to open database")

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL,
        phone TEXT,
        address TEXT NOT NULL,
        zip_code TEXT,
        profile_pic TEXT,
        role TEXT NOT NULL DEFAULT 'learner'
            CHECK (role IN ('learner', 'founder', 'existing_founder', 'other', 'admin')),
        is_approved TEXT NOT NULL DEFAULT 'pending'
            CHECK (is_approved IN ('pending', 'approved', 'rejected')),
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        price REAL NOT NULL CHECK (price >= 0),
        category TEXT,
        image_url TEXT,
        creator_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (creator_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY,
        customer_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        product_id TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        total_amount REAL NOT NULL CHECK (total_amount > 0),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled')),
        notes TEXT,
        created_by TEXT,
        updated_by TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS files (
        id TEXT PRIMARY KEY,
        original_name TEXT NOT NULL,
        filename TEXT NOT NULL,
        mime_type TEXT NOT NULL,
        size INTEGER NOT NULL,
        category TEXT NOT NULL DEFAULT 'general',
        description TEXT,
        uploaded_by TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        file_path TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders (customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_product ON orders (product_id)",
    "CREATE INDEX IF NOT EXISTS idx_products_creator ON products (creator_id)",
    "CREATE INDEX IF NOT EXISTS idx_files_uploaded_by ON files (uploaded_by)",
)


def is_transient(exc: BaseException) -> bool:
    """Locked, busy or briefly unavailable database; worth one more attempt."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_ERRORS)


def get_conn(path: Optional[str] = None, timeout: Optional[float] = None) -> sqlite3.Connection:
    """
    Get SQLite database connection with dict-friendly row factory.

    Args:
        path: Database file, defaults to settings.SQLITE_PATH
        timeout: Seconds to wait on a locked database, defaults to settings.DB_TIMEOUT

    Returns:
        SQLite connection with row_factory set to sqlite3.Row

    Raises:
        sqlite3.Error: If connection fails
    """
    db_path = Path(path or settings.SQLITE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        str(db_path),
        timeout=timeout if timeout is not None else settings.DB_TIMEOUT,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_schema(path: Optional[str] = None) -> None:
    """
    Initialize database schema by creating required tables if they don't exist.

    Creates:
    - users, products, orders, files and their lookup indexes

    Raises:
        sqlite3.Error: If schema creation fails
    """
    with closing(get_conn(path)) as conn:
        with conn:
            for ddl in SCHEMA:
                conn.execute(ddl)

    logger.info("DB schema ready", extra={"db_path": path or settings.SQLITE_PATH})


class Store:
    """
    Explicit handle on the relational store.

    One connection per statement; a statement that fails with a transient
    error (locked or busy database, file briefly unavailable) is retried once
    after a fixed delay. Constraint violations and statement errors (missing
    table, bad SQL) are never retried.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.path = str(path or settings.SQLITE_PATH)
        self.retry_delay = settings.DB_RETRY_DELAY if retry_delay is None else retry_delay
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        return get_conn(self.path, self.timeout)

    def init_schema(self) -> None:
        init_schema(self.path)

    def _run(self, statement: Statement) -> list[dict[str, Any]]:
        with closing(self.connect()) as conn:
            with conn:
                cursor = conn.execute(statement.sql, statement.params)
                rows = cursor.fetchall()
        return [dict(row) for row in rows]

    def _run_with_retry(self, statement: Statement) -> list[dict[str, Any]]:
        retrying = Retrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.retry_delay),
            before_sleep=lambda state: logger.warning(
                "Transient store error, retrying",
                extra={"attempt": state.attempt_number, "error": str(state.outcome.exception())},
            ),
            reraise=True,
        )
        return retrying(self._run, statement)

    def fetch_all(self, statement: Statement) -> list[dict[str, Any]]:
        """
        Execute a statement and return every row.

        Raises:
            Conflict: If a UNIQUE constraint rejects the write
            StoreError: On any other store failure
        """
        try:
            return self._run_with_retry(statement)
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                logger.info("Unique constraint rejected write", extra={"error": str(e)})
                raise Conflict("Resource already exists") from e
            logger.error("Store integrity error", extra={"error": str(e)})
            raise StoreError() from e
        except sqlite3.Error as e:
            logger.error("Store operation failed", extra={"error": str(e)})
            raise StoreError() from e

    def fetch_one(self, statement: Statement) -> Optional[dict[str, Any]]:
        rows = self.fetch_all(statement)
        return rows[0] if rows else None

    def execute(self, statement: Statement) -> int:
        """Execute a write and return the number of rows it returned."""
        return len(self.fetch_all(statement))

    def count(self, statement: Statement) -> int:
        row = self.fetch_one(statement)
        if not row:
            return 0
        return int(next(iter(row.values())) or 0)

    def fetch_page(
        self,
        listing: ListQuery,
        criteria: Mapping[str, Any],
        page: PageRequest,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], PageInfo]:
        """
        Run a listing: total count first, then the requested page.

        Raises:
            InvalidSortColumn: Before any statement runs, if the sort is not whitelisted
        """
        count_stmt, page_stmt = listing.build(criteria, page, sort_by, sort_order)
        total = self.count(count_stmt)
        rows = self.fetch_all(page_stmt)
        return rows, page.describe(total)

    def ping(self) -> bool:
        try:
            self.fetch_one(Statement("SELECT 1 AS ok"))
            return True
        except StoreError:
            return False
