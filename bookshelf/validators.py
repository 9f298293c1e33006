import re
from datetime import date
from typing import Optional, Union

RELEASE_DATE_FORMAT = "YYYY-MM-DD"
_RELEASE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TextValidator:
    """Required-text checks for book fields."""

    @staticmethod
    def _is_non_empty(text: Optional[str]) -> bool:
        if text is None or not isinstance(text, str):
            return False
        return bool(text.strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return TextValidator._is_non_empty(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        return TextValidator._is_non_empty(author)


class DateValidator:

    @staticmethod
    def parse_release_date(raw: Union[date, str, None]) -> Optional[date]:
        """Turn a release date input into a ``date``.

        Accepts a ``date``, a ``YYYY-MM-DD`` string, or ``None``/blank for an
        unknown date. Raises ``ValueError`` for anything else.
        """
        if raw is None:
            return None
        # datetime is a date subclass; keep only the calendar part
        if isinstance(raw, date):
            return date(raw.year, raw.month, raw.day)
        if not isinstance(raw, str):
            raise ValueError(f"Release date must be in format {RELEASE_DATE_FORMAT}.")
        text = raw.strip()
        if not text:
            return None
        if not _RELEASE_DATE_RE.match(text):
            raise ValueError(f"Release date must be in format {RELEASE_DATE_FORMAT}.")
        try:
            return date.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Release date {text} is not a valid calendar date.") from e
