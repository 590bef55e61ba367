import sqlite3
import logging
import asyncio
from typing import Optional, Dict, Any
from datetime import datetime, timezone

import config
from draper import DraperError, draperize, undraperize
from obfuscation import get_draperizer

# --- Environment Setup ---

logger = logging.getLogger(__name__)

# --- Constants & Globals ---

DB_FILE = config.DB_FILE

# --- SQL Functions ---

def _sql_draperize(value, spin, length):
    try:
        return draperize(int(value), int(spin), int(length), drawn=config.DRAWN_TABLES)
    except (DraperError, TypeError, ValueError) as e:
        logger.warning(f"draperize({value!r}, {spin!r}, {length!r}) failed: {e}")
        return None

def _sql_undraperize(encoded, spin):
    try:
        return undraperize(str(encoded), int(spin), drawn=config.DRAWN_TABLES)
    except (DraperError, TypeError, ValueError) as e:
        logger.warning(f"undraperize({encoded!r}, {spin!r}) failed: {e}")
        return None

def register_functions(conn: sqlite3.Connection) -> sqlite3.Connection:
    """
    Registers draperize(value, spin, length) and undraperize(text, spin) as SQL
    functions on a connection. Registering again simply replaces them.
    """
    conn.create_function("draperize", 3, _sql_draperize, deterministic=True)
    conn.create_function("undraperize", 2, _sql_undraperize, deterministic=True)
    return conn

# --- Database Connection ---

def get_db_connection():
    """Returns a connection to the SQLite database with the cipher functions installed."""
    conn = sqlite3.connect(DB_FILE)
    conn.row_factory = sqlite3.Row
    return register_functions(conn)

def init_db():
    """Initializes the database and creates the tables if they don't exist."""
    target = config.TARGET_FIELD
    with get_db_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS dd_sequences (
                name TEXT PRIMARY KEY,
                value INTEGER NOT NULL
            )
        """)
        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                {target} TEXT NOT NULL UNIQUE,
                source_value INTEGER NOT NULL UNIQUE,
                label TEXT,
                created_at TIMESTAMP NOT NULL
            )
        """)
        conn.commit()
    logger.info("Database initialized successfully.")

# --- Value Source ---

def next_value(conn: sqlite3.Connection, sequence_name: str) -> int:
    """Increments a named sequence and returns its new value. Starts at 1."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO dd_sequences (name, value) VALUES (?, 1)
        ON CONFLICT(name) DO UPDATE SET value = value + 1
        """,
        (sequence_name,)
    )
    cursor.execute("SELECT value FROM dd_sequences WHERE name = ?", (sequence_name,))
    return cursor.fetchone()["value"]

# --- Public Database Operations ---

def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    record = dict(row)
    record["public_id"] = record.pop(config.TARGET_FIELD)
    return record

async def create_record(label: Optional[str] = None, source_value: Optional[int] = None) -> Dict[str, Any]:
    """
    Inserts a record and writes the obfuscated source value into the target field.

    With a 'sequence' source the value comes from the named sequence; with a
    'column' source the caller supplies it. Raises ValueError on duplicates.
    """
    if config.SOURCE == "sequence" and source_value is not None:
        raise ValueError("source_value cannot be supplied when the source is a sequence.")
    if config.SOURCE == "column":
        if source_value is None:
            raise ValueError("source_value is required when the source is a column.")
        if source_value < 0:
            raise ValueError("source_value must be non-negative.")

    draperizer = get_draperizer()
    target = config.TARGET_FIELD

    loop = asyncio.get_running_loop()
    def db_insert():
        with get_db_connection() as conn:
            value = source_value
            if value is None:
                value = next_value(conn, config.SEQUENCE_NAME)
            public_id = draperizer.obfuscate(value)
            created_at = datetime.now(timezone.utc).isoformat()
            try:
                cursor = conn.cursor()
                cursor.execute(
                    f"""
                    INSERT INTO records ({target}, source_value, label, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (public_id, value, label, created_at)
                )
            except sqlite3.IntegrityError as e:
                raise ValueError(f"Source value {value} is already in use.") from e
            conn.commit()
            return {
                "id": cursor.lastrowid,
                "public_id": public_id,
                "source_value": value,
                "label": label,
                "created_at": created_at,
            }
    record = await loop.run_in_executor(None, db_insert)
    logger.info(f"Created record {record['id']} with public id {record['public_id']}")
    return record

async def get_record_by_public_id(public_id: str) -> Optional[Dict[str, Any]]:
    loop = asyncio.get_running_loop()
    def db_fetch():
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM records WHERE {config.TARGET_FIELD} = ?", (public_id,))
            row = cursor.fetchone()
            return _row_to_dict(row) if row else None
    return await loop.run_in_executor(None, db_fetch)

async def get_record_by_source(source_value: int) -> Optional[Dict[str, Any]]:
    """Fetches a record by its pre-obfuscation value."""
    loop = asyncio.get_running_loop()
    def db_fetch():
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM records WHERE source_value = ?", (source_value,))
            row = cursor.fetchone()
            return _row_to_dict(row) if row else None
    return await loop.run_in_executor(None, db_fetch)
