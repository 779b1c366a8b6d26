"""CRUD operations for the key-value table backing the local store.

Values are JSON documents; callers own their shape.
"""

import json
import sqlite3
import logging
from pathlib import Path
from typing import Any, Optional

from voice_calendar.database.schema import ALL_TABLES

logger = logging.getLogger(__name__)


def initialize_database(db_path: str | Path) -> None:
    """Initializes the database by creating tables if they don't exist.

    Args:
        db_path: The path to the SQLite database file.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = sqlite3.connect(str(db_path))
        try:
            with conn:
                cursor = conn.cursor()
                for table_sql in ALL_TABLES:
                    cursor.execute(table_sql)
                logger.info(f"Database tables initialized successfully at {db_path}.")
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error(f"Error initializing database tables at {db_path}: {e}", exc_info=True)
        raise


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Opens a connection usable from the threadpool FastAPI runs sync routes in.

    Tables are created on the fly so a fresh path is immediately usable.
    """
    initialize_database(db_path)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def get_value(conn: sqlite3.Connection, key: str) -> Optional[Any]:
    """Reads and decodes the JSON value stored under ``key``.

    Returns:
        The decoded value, or None if the key is missing or holds invalid JSON.

    Raises:
        sqlite3.Error: For database errors during query.
    """
    sql = "SELECT value FROM local_store WHERE key = ?"
    try:
        row = conn.execute(sql, (key,)).fetchone()
    except sqlite3.Error as e:
        logger.error(f"Error reading key '{key}' from local store: {e}", exc_info=True)
        raise
    if row is None:
        return None
    try:
        return json.loads(row["value"])
    except json.JSONDecodeError as e:
        logger.error(f"Stored value for key '{key}' is not valid JSON, ignoring it: {e}")
        return None


def set_value(conn: sqlite3.Connection, key: str, value: Any) -> None:
    """Serializes ``value`` to JSON and upserts it under ``key``.

    Raises:
        sqlite3.Error: For database errors during insertion.
    """
    sql = """INSERT INTO local_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
             ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP"""
    try:
        with conn:
            conn.execute(sql, (key, json.dumps(value)))
        logger.debug(f"Stored key '{key}' in local store.")
    except sqlite3.Error as e:
        logger.error(f"Error writing key '{key}' to local store: {e}", exc_info=True)
        raise


def delete_value(conn: sqlite3.Connection, key: str) -> bool:
    """Removes ``key``. Returns True if a row was deleted."""
    sql = "DELETE FROM local_store WHERE key = ?"
    try:
        with conn:
            cursor = conn.execute(sql, (key,))
        return cursor.rowcount > 0
    except sqlite3.Error as e:
        logger.error(f"Error deleting key '{key}' from local store: {e}", exc_info=True)
        raise
