"""
Isobel Dashboard - Database Manager
===================================

Owns the SQLite connection shared by every dashboard request.

DESIGN:
    One connection per manager, serialized by a single lock. The mixins
    never touch the connection directly; they go through execute(),
    fetchone(), fetchall() or transaction(), and run those calls on a
    worker thread with asyncio.to_thread so the event loop never blocks
    on disk I/O.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from isobel.core.logger import logger
from isobel.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT
from isobel.utils.lazy import InitOnce

from isobel.core.database.schema import SchemaMixin
from isobel.core.database.identity import IdentityMixin
from isobel.core.database.guilds import GuildsMixin
from isobel.core.database.settings import SettingsMixin
from isobel.core.database.sessions import SessionsMixin


_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}",
)


# =============================================================================
# Database Manager
# =============================================================================

class DatabaseManager(
    SchemaMixin,
    IdentityMixin,
    GuildsMixin,
    SettingsMixin,
    SessionsMixin,
):
    """SQLite store for identities, guilds, sessions and settings."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_tables()

        logger.tree("Database Opened", [
            ("File", self._db_path.name),
            ("Directory", str(self._db_path.parent)),
        ], emoji="🗄️")

    # =========================================================================
    # Connection
    # =========================================================================

    def _connection(self) -> sqlite3.Connection:
        """Open the file on first use (and again after close())."""
        if self._conn is not None:
            return self._conn

        try:
            conn = sqlite3.connect(
                str(self._db_path),
                timeout=DB_CONNECTION_TIMEOUT,
                check_same_thread=False,
            )
            for pragma in _PRAGMAS:
                conn.execute(pragma)
        except sqlite3.Error as e:
            logger.error("Database Open Failed", [
                ("File", str(self._db_path)),
                ("Error", str(e)),
            ])
            raise

        conn.row_factory = sqlite3.Row
        self._conn = conn
        return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Database Closed", [("File", self._db_path.name)])

    # =========================================================================
    # Statements
    # =========================================================================

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        """Run one write statement and commit it. A failed statement is rolled back."""
        with self._lock:
            conn = self._connection()
            try:
                cursor = conn.execute(query, params)
            except sqlite3.Error:
                conn.rollback()
                raise
            conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._connection().execute(query, params).fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._connection().execute(query, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Hold the write lock for several statements.

        Yields a cursor; everything run on it commits together when the
        block exits normally and is rolled back if it raises.

        Example:
            with db.transaction() as tx:
                tx.execute("INSERT INTO discord_guilds ...", (...))
                tx.execute("INSERT INTO guild_members ...", (...))
        """
        with self._lock:
            conn = self._connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn.cursor()
            except BaseException as e:
                conn.rollback()
                logger.warning("Database Transaction Rolled Back", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                raise
            conn.commit()


# =============================================================================
# Process-wide Instance
# =============================================================================

def _open_configured_database() -> DatabaseManager:
    from isobel.core.config import get_config
    return DatabaseManager(get_config().database_path)


_db: InitOnce[DatabaseManager] = InitOnce("Database", _open_configured_database)


def init_db(db_path: Optional[Path] = None) -> DatabaseManager:
    """
    Open the process-wide database once.

    Args:
        db_path: File to open. Defaults to DATABASE_PATH from config.
            Ignored when the database is already open.
    """
    if db_path is None:
        return _db.init()
    return _db.init(lambda: DatabaseManager(db_path))


def get_db() -> DatabaseManager:
    return _db.get()


def close_db() -> None:
    """Close the process-wide database. The next get_db() reopens it."""
    db = _db.reset()
    if db is not None:
        db.close()


__all__ = [
    "DatabaseManager",
    "init_db",
    "get_db",
    "close_db",
]
