from __future__ import annotations

import sqlite3
from datetime import date


class Book:
    """Represents a single book record in the catalog."""

    def __init__(self, title: str, author: str, release_date: date | None = None, id: int | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.release_date = release_date

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.release_date_text})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, author={self.author!r}, release_date={self.release_date!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def release_date_text(self) -> str:
        return self.release_date.isoformat() if self.release_date else "N/A"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "release_date": self.release_date.isoformat() if self.release_date else None,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        released = data.get("release_date")
        if isinstance(released, str):
            released = date.fromisoformat(released) if released else None
        return Book(title=data["title"], author=data["author"], release_date=released, id=data.get("id"))

    @staticmethod
    def from_row(row: sqlite3.Row) -> "Book":
        return Book.from_dict(dict(row))
