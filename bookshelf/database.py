import logging
import sqlite3

logger = logging.getLogger(__name__)

# Seconds sqlite3 waits on a locked database before raising OperationalError.
BUSY_TIMEOUT = 5.0


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def get_db_connection(db_file: str) -> sqlite3.Connection:
    """Establishes a connection to the SQLite database.

    Each store operation opens its own short-lived connection and closes it
    when done. A ``casefold()`` SQL function is registered so title lookups
    can match case-insensitively beyond ASCII.
    """
    conn = sqlite3.connect(db_file, timeout=BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    return conn


def create_tables(db_file: str) -> None:
    """Creates the books table if it does not exist."""
    conn = get_db_connection(db_file)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL UNIQUE,
                author TEXT NOT NULL,
                release_date DATE
            )
        """)
        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: str) -> None:
    """Initializes the database, creating the schema if needed. Safe to call on every startup."""
    logger.info(f"Initializing book database at {db_file}")
    create_tables(db_file)
