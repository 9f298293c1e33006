import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional, Union

from bookshelf.book import Book
from bookshelf.database import get_db_connection, initialize_database
from bookshelf.validators import DateValidator, TextValidator

logger = logging.getLogger(__name__)

SQLITE_MIN_ID = -(2 ** 63)
SQLITE_MAX_ID = 2 ** 63 - 1


class BookStoreError(Exception):
    """Base class for every failure the book store reports."""


class ValidationError(BookStoreError):
    """Missing or malformed input, detected before touching the database."""


class DuplicateTitleError(BookStoreError):
    """The database rejected an insert because the title already exists."""

    def __init__(self, title: str) -> None:
        super().__init__(f'A book with the title "{title}" already exists.')
        self.title = title


class StorageError(BookStoreError):
    """Connectivity or unexpected database failure. Safe for callers to retry."""


def _is_unique_violation(error: sqlite3.IntegrityError) -> bool:
    name = getattr(error, "sqlite_errorname", None)
    if name is not None:
        return name in ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")
    return "UNIQUE constraint failed" in str(error)


class BookStore:
    """Durable storage of book records.

    Title uniqueness is enforced by the table's UNIQUE constraint, so two
    concurrent ``add`` calls for the same title cannot both succeed. Every
    operation opens its own connection and runs a single statement.
    """

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file

    @contextmanager
    def _connection(self, action: str) -> Iterator[sqlite3.Connection]:
        conn = None
        try:
            conn = get_db_connection(self.db_file)
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Storage failure while trying to {action}: {e}")
            raise StorageError(f"Could not {action}: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    # ------------------------- Schema ------------------------- #
    def initialize(self) -> None:
        """Create the books table if missing. Idempotent."""
        try:
            initialize_database(self.db_file)
        except sqlite3.Error as e:
            logger.error(f"Could not initialize database {self.db_file}: {e}")
            raise StorageError(f"Could not initialize database: {e}") from e

    # ------------------------- Core operations ------------------------- #
    def add(self, title: str, author: str, release_date: Union[date, str, None] = None) -> Book:
        """Insert a new book and return it with its assigned id.

        Raises ``ValidationError`` for empty title/author or a malformed date,
        ``DuplicateTitleError`` when the title is already stored and
        ``StorageError`` for anything else the database reports.
        """
        book = self._build_book(title, author, release_date)

        with self._connection("add book") as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO books (title, author, release_date) VALUES (?, ?, ?)",
                    (book.title, book.author, book.release_date.isoformat() if book.release_date else None),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                if not _is_unique_violation(e):
                    raise
                logger.warning(f"Rejected duplicate title: {book.title!r}")
                raise DuplicateTitleError(book.title) from e
            book.id = cursor.lastrowid

        logger.info(f"Added book {book.id}: {book.title!r} by {book.author!r}")
        return book

    def remove(self, title: str) -> int:
        """Delete every book whose title matches case-insensitively.

        Returns the number of rows removed; zero means nothing matched.
        """
        title = (title or "").strip()
        with self._connection("remove book") as conn:
            cursor = conn.execute("DELETE FROM books WHERE casefold(title) = casefold(?)", (title,))
            conn.commit()
            removed = cursor.rowcount

        if removed:
            logger.info(f"Removed {removed} book(s) titled {title!r}")
        return removed

    def list(self) -> List[Book]:
        """All books ordered by title."""
        with self._connection("list books") as conn:
            rows = conn.execute("SELECT id, title, author, release_date FROM books ORDER BY title").fetchall()
        return [Book.from_row(row) for row in rows]

    def get(self, book_id: int) -> Optional[Book]:
        # ids outside SQLite INTEGER range cannot exist
        if not SQLITE_MIN_ID <= book_id <= SQLITE_MAX_ID:
            return None
        with self._connection("get book") as conn:
            row = conn.execute(
                "SELECT id, title, author, release_date FROM books WHERE id = ?", (book_id,)
            ).fetchone()
        return Book.from_row(row) if row else None

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _build_book(title: Optional[str], author: Optional[str], release_date: Union[date, str, None]) -> Book:
        if not TextValidator.validate_title(title):
            raise ValidationError("Title cannot be empty.")
        if not TextValidator.validate_author(author):
            raise ValidationError("Author cannot be empty.")
        try:
            released = DateValidator.parse_release_date(release_date)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return Book(title=title, author=author, release_date=released)
