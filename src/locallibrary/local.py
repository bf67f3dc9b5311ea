"""Standalone library used without a backend account.

Everything lives under two fixed keys of a small sqlite file: ``library``
holds the JSON list of books and ``theme`` the display theme. Both are read
when the repository is created and rewritten after every change.
"""

import json
import logging
import sqlite3
import threading
import time
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .config import Settings
from .errors import InvalidRequest, MissingField, NotFound
from .models import BookBase

logger = logging.getLogger(__name__)

LIBRARY_KEY = "library"
THEME_KEY = "theme"
THEMES = ("light", "dark")

DEFAULT_BOOKS = [
    {
        "id": 1,
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "category": "Fantasy",
        "cover": "https://images.unsplash.com/photo-1544947950-fa07a98d237f?ixlib=rb-4.0.3&auto=format&fit=crop&w=300&q=80",
    },
    {
        "id": 2,
        "title": "1984",
        "author": "George Orwell",
        "category": "Dystopia",
        "cover": "https://images.unsplash.com/photo-1543002588-bfa74002ed7e?ixlib=rb-4.0.3&auto=format&fit=crop&w=300&q=80",
    },
    {
        "id": 3,
        "title": "Power Play Edition: First edition",
        "author": "Rick Campbell",
        "category": "Fiction",
        "cover": "https://images.unsplash.com/photo-1507842217343-583bb7270b66?w=800&q=80",
    },
    {
        "id": 4,
        "title": "My love story",
        "author": "Casey Howard",
        "category": "Romance",
        "cover": "https://images.unsplash.com/photo-1501594907352-04cda38ebc29?w=800&q=80",
    },
]


class LocalBook(BookBase):
    id: int


_BOOK_LIST = TypeAdapter(list[LocalBook])


class LocalStorage:
    """String values under fixed keys, persisted in sqlite

    :param dbpath: path of the sqlite file, ``:memory:`` is not supported
    :type dbpath: str
    """

    def __init__(self, dbpath: str) -> None:
        self._dbpath = dbpath
        self._lock = threading.RLock()
        self._create_table()

    def _get_connection(self):
        return sqlite3.connect(self._dbpath)

    def _create_table(self):
        with self._lock, self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> str | None:
        with self._lock, self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM storage WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        with self._lock, self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO storage (key, value) VALUES (?, ?)",
                (key, value),
            )


class LocalLibrary:
    """Book list and theme preference of the standalone mode."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self._books = self._load_books()
        theme = storage.get(THEME_KEY)
        self._theme = theme if theme in THEMES else "light"

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalLibrary":
        return cls(LocalStorage(settings.local_storage_path))

    def _load_books(self) -> list[LocalBook]:
        raw = self.storage.get(LIBRARY_KEY)
        if raw is not None:
            try:
                return _BOOK_LIST.validate_json(raw)
            except ValidationError:
                logger.warning("stored library is unreadable, starting over")
        return _BOOK_LIST.validate_python(DEFAULT_BOOKS)

    def _save(self):
        self.storage.set(
            LIBRARY_KEY, json.dumps([b.model_dump() for b in self._books])
        )

    def _next_id(self) -> int:
        new_id = int(time.time() * 1000)
        taken = {b.id for b in self._books}
        while new_id in taken:
            new_id += 1
        return new_id

    @property
    def books(self) -> list[LocalBook]:
        return list(self._books)

    def get_book(self, book_id: int) -> LocalBook:
        for book in self._books:
            if book.id == book_id:
                return book
        raise NotFound("Book not found")

    def list_books(self, search: str = "", category: str = "") -> list[LocalBook]:
        term = (search or "").strip().lower()
        return [
            b
            for b in self._books
            if (term in b.title.lower() or term in b.author.lower())
            and (not category or b.category == category)
        ]

    def categories(self) -> list[str]:
        return sorted({b.category for b in self._books})

    def add_book(
        self, title: str, author: str, category: str, cover: str | None = None
    ) -> LocalBook:
        book = self._validated(
            {"title": title, "author": author, "category": category, "cover": cover},
            self._next_id(),
        )
        self._books.append(book)
        self._save()
        return book

    def update_book(self, book_id: int, **changes: Any) -> LocalBook:
        unknown = set(changes) - {"title", "author", "category", "cover"}
        if unknown:
            raise InvalidRequest(
                f"Cannot update fields: {', '.join(sorted(unknown))}"
            )
        current = self.get_book(book_id)
        merged = current.model_dump(exclude={"id"})
        merged.update(changes)
        book = self._validated(merged, book_id)
        self._books = [book if b.id == book_id else b for b in self._books]
        self._save()
        return book

    def delete_book(self, book_id: int):
        self.get_book(book_id)
        self._books = [b for b in self._books if b.id != book_id]
        self._save()

    @staticmethod
    def _validated(fields: dict[str, Any], book_id: int) -> LocalBook:
        for key in ("title", "author", "category"):
            value = fields.get(key)
            if not isinstance(value, str) or not value.strip():
                raise MissingField("Please fill in Title, Author, and Category.")
        return LocalBook.model_validate({**fields, "id": book_id})

    @property
    def theme(self) -> str:
        return self._theme

    def set_theme(self, theme: str):
        if theme not in THEMES:
            raise InvalidRequest(f"Unknown theme: {theme}")
        self._theme = theme
        self.storage.set(THEME_KEY, theme)

    def toggle_theme(self) -> str:
        self.set_theme("light" if self._theme == "dark" else "dark")
        return self._theme
