"""
Remote gallery persistence backends.

Every backend offers the same small interface:

    save(entry)      -> GalleryEntry | None   (None = not persisted remotely)
    list()           -> List[GalleryEntry]     (raises PersistenceUnavailableError)
    is_configured()   -> bool
    test_connection() -> (ok, message)
    close()

Connections are opened on first use and released by close(). Only entries
that reference an uploaded image (``storage_url``) are stored remotely.

Classes:
    GalleryBackend: Structural interface
    NullGalleryBackend: No database configured
    SqliteGalleryBackend: SQLite file database
    PostgresGalleryBackend: PostgreSQL through an asyncpg pool

Functions:
    create_gallery_backend: Build the backend selected by a DatabaseConfig
"""

from pathlib import Path
from typing import Any, Coroutine, List, Optional, Protocol, Tuple
import asyncio
import logging
import sqlite3
import threading

import asyncpg

from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry, parse_datetime
from PC_Libs.config import DatabaseConfig
from PC_Libs.constants import DB_TYPE_POSTGRES, DB_TYPE_SQLITE, GALLERY_TABLE
from PC_Libs.errors import PersistenceUnavailableError

logger = logging.getLogger(__name__)

POSTGRES_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError)
NO_DATABASE_MESSAGE = 'DB_TYPE is "none" or not set. No database connection to test.'


class GalleryBackend(Protocol):
    def save(self, entry: GalleryEntry) -> Optional[GalleryEntry]: ...
    def list(self) -> List[GalleryEntry]: ...
    def is_configured(self) -> bool: ...
    def test_connection(self) -> Tuple[bool, str]: ...
    def close(self) -> None: ...


def _require_storage_url(entry: GalleryEntry) -> bool:
    if not entry.storage_url:
        logger.warning(f"Entry {entry.id} has no storage URL; not saving it remotely")
        return False
    return True


class NullGalleryBackend:
    """Backend used when no database is configured."""

    def save(self, entry: GalleryEntry) -> Optional[GalleryEntry]:
        return None

    def list(self) -> List[GalleryEntry]:
        return []

    def is_configured(self) -> bool:
        return False

    def test_connection(self) -> Tuple[bool, str]:
        return True, NO_DATABASE_MESSAGE

    def close(self) -> None:
        pass


class SqliteGalleryBackend:
    CREATE_TABLE_SQL = f"""
        CREATE TABLE IF NOT EXISTS {GALLERY_TABLE} (
            id TEXT PRIMARY KEY,
            storage_url TEXT NOT NULL,
            prompt TEXT,
            created_at TEXT NOT NULL
        )
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return True

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute(self.CREATE_TABLE_SQL)
            conn.commit()
            self._conn = conn
            logger.info(f"Opened SQLite gallery at {self.db_path}")
        return self._conn

    def save(self, entry: GalleryEntry) -> Optional[GalleryEntry]:
        if not _require_storage_url(entry):
            return None
        try:
            with self._lock:
                conn = self._connection()
                conn.execute(
                    f"INSERT INTO {GALLERY_TABLE} (id, storage_url, prompt, created_at) VALUES (?, ?, ?, ?)",
                    (entry.id, entry.storage_url, entry.prompt, entry.created_at.isoformat()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            logger.error(f"SQLite save error: {exc}")
            return None
        return entry

    def list(self) -> List[GalleryEntry]:
        try:
            with self._lock:
                rows = self._connection().execute(
                    f"SELECT id, storage_url, prompt, created_at FROM {GALLERY_TABLE} ORDER BY created_at DESC"
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceUnavailableError(f"SQLite retrieval error: {exc}") from exc

        return [
            GalleryEntry(
                id=row["id"],
                prompt=row["prompt"] or "",
                created_at=parse_datetime(row["created_at"]),
                storage_url=row["storage_url"],
            )
            for row in rows
        ]

    def test_connection(self) -> Tuple[bool, str]:
        """Open the database, make sure the table exists and run a trivial query."""
        try:
            with self._lock:
                self._connection().execute("SELECT 1").fetchone()
        except (sqlite3.Error, OSError) as exc:
            message = f"Failed to open SQLite database at {self.db_path}: {exc}"
            logger.error(message)
            return False, message
        return True, f"Successfully connected to SQLite at {self.db_path} and ensured table exists."

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


class PostgresGalleryBackend:
    """
    PostgreSQL backend.

    asyncpg is asynchronous; this backend keeps a private event loop so the
    synchronous gallery interface can drive it from any worker thread, one
    call at a time.
    """

    CREATE_TABLE_SQL = f"""
        CREATE TABLE IF NOT EXISTS {GALLERY_TABLE} (
            id TEXT PRIMARY KEY,
            storage_url TEXT NOT NULL,
            prompt TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """

    def __init__(self, postgres_url: str) -> None:
        self.postgres_url = postgres_url
        self._pool = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return True

    def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(coro)

    async def _get_pool(self):
        if self._pool is None:
            self._pool = await asyncpg.create_pool(self.postgres_url)
            async with self._pool.acquire() as conn:
                await conn.execute(self.CREATE_TABLE_SQL)
            logger.info("Initialized PostgreSQL gallery pool")
        return self._pool

    async def _insert(self, entry: GalleryEntry) -> Any:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            return await conn.fetchrow(
                f"INSERT INTO {GALLERY_TABLE} (id, storage_url, prompt, created_at) "
                f"VALUES ($1, $2, $3, $4) RETURNING id, storage_url, prompt, created_at",
                entry.id,
                entry.storage_url,
                entry.prompt,
                entry.created_at,
            )

    async def _select(self) -> List[Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            return await conn.fetch(
                f"SELECT id, storage_url, prompt, created_at FROM {GALLERY_TABLE} ORDER BY created_at DESC"
            )

    async def _ping(self) -> Any:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT 1")

    @staticmethod
    def _row_to_entry(row: Any) -> GalleryEntry:
        return GalleryEntry(
            id=str(row["id"]),
            prompt=row["prompt"] or "",
            created_at=parse_datetime(row["created_at"]),
            storage_url=row["storage_url"],
        )

    def save(self, entry: GalleryEntry) -> Optional[GalleryEntry]:
        if not _require_storage_url(entry):
            return None
        try:
            with self._lock:
                row = self._run(self._insert(entry))
        except POSTGRES_ERRORS as exc:
            logger.error(f"PostgreSQL save error: {exc}")
            return None
        return self._row_to_entry(row) if row is not None else entry

    def list(self) -> List[GalleryEntry]:
        try:
            with self._lock:
                rows = self._run(self._select())
        except POSTGRES_ERRORS as exc:
            raise PersistenceUnavailableError(f"PostgreSQL retrieval error: {exc}") from exc
        return [self._row_to_entry(row) for row in rows]

    def test_connection(self) -> Tuple[bool, str]:
        try:
            with self._lock:
                self._run(self._ping())
        except POSTGRES_ERRORS as exc:
            message = f"Failed to connect to PostgreSQL or initialize table: {exc}"
            logger.error(message)
            return False, message
        return True, "Successfully connected to PostgreSQL and ensured table exists."

    def close(self) -> None:
        with self._lock:
            if self._pool is not None and self._loop is not None:
                self._loop.run_until_complete(self._pool.close())
            self._pool = None
            if self._loop is not None:
                self._loop.close()
                self._loop = None


def create_gallery_backend(config: DatabaseConfig) -> GalleryBackend:
    """Build the backend selected by ``config`` (NullGalleryBackend when unconfigured)."""
    if config.db_type == DB_TYPE_SQLITE and config.sqlite_path is not None:
        return SqliteGalleryBackend(config.sqlite_path)
    if config.db_type == DB_TYPE_POSTGRES and config.postgres_url:
        return PostgresGalleryBackend(config.postgres_url)
    return NullGalleryBackend()
