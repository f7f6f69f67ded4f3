# connection factory for the marketplace database; schema and fixtures load on first use
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = config.DB_PATH
SCHEMA_VERSION = 1
# several app processes share one file; writers wait this long for the lock
BUSY_TIMEOUT_MS = 5000

_SQL_DIR = os.path.dirname(os.path.abspath(__file__))
SETUP_SCRIPTS = ("schema.sql", "seed.sql")

_initialized = False
_init_lock = asyncio.Lock()


async def schema_version(conn: aiosqlite.Connection) -> int:
    cur = await conn.execute("PRAGMA user_version;")
    (version,) = await cur.fetchone()
    await cur.close()
    return version


async def _create(conn: aiosqlite.Connection) -> None:
    for name in SETUP_SCRIPTS:
        _logger.info(f"Running {name}")
        with open(os.path.join(_SQL_DIR, name), encoding="utf-8") as f:
            await conn.executescript(f.read())
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    await conn.commit()


async def _ensure_schema(conn: aiosqlite.Connection) -> None:
    global _initialized
    async with _init_lock:
        if _initialized:
            return
        version = await schema_version(conn)
        if version == 0:
            _logger.info(f"Creating database at {DB_PATH}")
            await _create(conn)
        elif version != SCHEMA_VERSION:
            _logger.warning(f"Database schema v{version}, expected v{SCHEMA_VERSION}")
        _initialized = True


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """
    Open a connection with foreign keys on and rows as sqlite3.Row.
    The first connection of the process creates the schema if the file is new.
    """
    folder = os.path.dirname(DB_PATH)
    if folder:
        os.makedirs(folder, exist_ok=True)
    conn = await aiosqlite.connect(DB_PATH)
    try:
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")
        await conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS};")
        if not _initialized:
            await _ensure_schema(conn)
        yield conn
    finally:
        await conn.close()
