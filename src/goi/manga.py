"""Manga books and the collection entries linked to them.

Books are persisted the same way as the vocabulary collection: the whole
list under one key, copied to a backup key after each successful write.
A book refers to collection entries by id only, so deleting an entry
leaves a dangling id that lookups skip.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .errors import DecodingError, StorageWriteError
from .models import MangaBook, VocabularyEntry, new_id
from .normalize import normalize_for_match
from .store import BACKUP_SUFFIX, KeyValueStore, restore_with_backup, save_with_backup

logger = logging.getLogger(__name__)

DEFAULT_MANGA_KEY = "manga_books"


def serialize_books(books: List[MangaBook]) -> str:
    return json.dumps([b.to_dict() for b in books], ensure_ascii=False, indent=2)


def deserialize_books(text: str) -> List[MangaBook]:
    try:
        raw = json.loads(text)
        if not isinstance(raw, list):
            raise TypeError("manga list must be a JSON array")
        return [MangaBook.from_dict(item) for item in raw]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise DecodingError(f"Cannot decode manga list: {exc}") from exc


def _clean_book(book: MangaBook) -> Optional[MangaBook]:
    title = (book.title or "").strip()
    if not title:
        return None
    return replace(
        book,
        title=title,
        author=(book.author or "").strip() or None,
        chapter=(book.chapter or "").strip() or None,
        notes=(book.notes or "").strip(),
    )


class MangaStore:
    """The user's manga list, persisted on every mutation, in insertion order."""

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_MANGA_KEY) -> None:
        self.kv = kv
        self.key = key
        self.backup_key = key + BACKUP_SUFFIX
        self._books: List[MangaBook] = restore_with_backup(
            kv, self.key, self.backup_key, deserialize_books
        )

    def _commit(self, previous: List[MangaBook]) -> None:
        try:
            save_with_backup(self.kv, self.key, self.backup_key, serialize_books(self._books))
        except StorageWriteError:
            self._books = previous
            raise
        logger.debug("Saved %d manga books", len(self._books))

    def __len__(self) -> int:
        return len(self._books)

    def get(self, book_id: str) -> Optional[MangaBook]:
        for book in self._books:
            if book.book_id == book_id:
                return book
        return None

    def all(self) -> List[MangaBook]:
        return list(self._books)

    def add(self, book: MangaBook) -> Optional[MangaBook]:
        """Store a new book with a fresh id; None if its title is blank."""
        cleaned = _clean_book(book)
        if cleaned is None:
            return None
        stored = replace(
            cleaned,
            entry_ids=list(dict.fromkeys(cleaned.entry_ids)),
            book_id=new_id(),
            date_added=datetime.now(timezone.utc),
        )
        previous = list(self._books)
        self._books.append(stored)
        self._commit(previous)
        logger.info("Added manga '%s'", stored.title)
        return stored

    def update(self, book: MangaBook) -> None:
        """Replace the book with the same id, keeping ``date_added``.

        Unknown ids and blank titles are ignored.
        """
        cleaned = _clean_book(book)
        for index, existing in enumerate(self._books):
            if existing.book_id != book.book_id:
                continue
            if cleaned is None:
                logger.debug("update ignored, blank title for manga %s", book.book_id)
                return
            previous = list(self._books)
            self._books[index] = replace(
                cleaned,
                entry_ids=list(dict.fromkeys(cleaned.entry_ids)),
                date_added=existing.date_added,
            )
            self._commit(previous)
            return
        logger.debug("update ignored, no manga with id %s", book.book_id)

    def delete(self, book_id: str) -> None:
        remaining = [b for b in self._books if b.book_id != book_id]
        if len(remaining) == len(self._books):
            return
        previous = self._books
        self._books = remaining
        self._commit(previous)

    def add_entry(self, book_id: str, entry_id: str) -> bool:
        """Link a collection entry to a book.

        Returns False when the book is unknown or already holds the entry.
        """
        for index, book in enumerate(self._books):
            if book.book_id != book_id:
                continue
            if entry_id in book.entry_ids:
                return False
            previous = list(self._books)
            self._books[index] = replace(book, entry_ids=book.entry_ids + [entry_id])
            self._commit(previous)
            return True
        return False

    def remove_entry(self, book_id: str, entry_id: str) -> bool:
        for index, book in enumerate(self._books):
            if book.book_id != book_id or entry_id not in book.entry_ids:
                continue
            previous = list(self._books)
            self._books[index] = replace(
                book, entry_ids=[i for i in book.entry_ids if i != entry_id]
            )
            self._commit(previous)
            return True
        return False


def entries_in_book(book: MangaBook, entries: Iterable[VocabularyEntry]) -> List[VocabularyEntry]:
    """Collection entries linked to ``book``, in the order they were linked."""
    by_id = {e.entry_id: e for e in entries}
    return [by_id[i] for i in book.entry_ids if i in by_id]


def search_in_book(
    book: MangaBook, entries: Iterable[VocabularyEntry], query: str
) -> List[VocabularyEntry]:
    """Linked entries whose word, romaji or joined meanings contain ``query``.

    An empty query returns every linked entry.
    """
    linked = entries_in_book(book, entries)
    needle = normalize_for_match(query)
    if not needle:
        return linked
    return [
        e
        for e in linked
        if any(needle in normalize_for_match(t) for t in (e.headword, e.romaji, "".join(e.meanings)))
    ]
