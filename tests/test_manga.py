"""Tests for manga books and their linked vocabulary."""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from goi.errors import DecodingError, StorageWriteError
from goi.manga import MangaStore, deserialize_books, search_in_book
from goi.models import MangaBook, VocabularyEntry
from goi.store import KeyValueStore


@pytest.fixture
def kv(tmp_path):
    return KeyValueStore(tmp_path / "store")


@pytest.fixture
def manga(kv):
    return MangaStore(kv)


@pytest.fixture
def entries():
    return [
        VocabularyEntry("夢", "yume", ["dream"], entry_id="e-yume"),
        VocabularyEntry("仲間", "nakama", ["comrade", "friend"], entry_id="e-nakama"),
        VocabularyEntry("海賊", "kaizoku", ["pirate"], entry_id="e-kaizoku"),
    ]


class TestMangaBookRecord:
    """Test serialization of manga records."""

    def test_dict_round_trip(self):
        book = MangaBook(
            title="ワンピース",
            author="尾田栄一郎",
            volume=1,
            chapter="1",
            notes="Adventure manga",
            entry_ids=["e-yume"],
            date_added=datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
        assert MangaBook.from_dict(book.to_dict()) == book

    def test_stored_field_names(self):
        data = MangaBook(title="ナルト", entry_ids=["a"]).to_dict()
        assert data["vocabularyEntries"] == ["a"]
        assert set(data) == {"id", "title", "author", "volume", "chapter", "notes", "vocabularyEntries", "dateAdded"}

    @pytest.mark.parametrize("text", ["{", "{}", '[{"title": "x"}]', '[{"id": "1", "title": "x", "volume": "one", "dateAdded": "2024-01-01"}]'])
    def test_decoding_errors(self, text):
        with pytest.raises(DecodingError):
            deserialize_books(text)


class TestMangaStore:
    """Test book management and persistence."""

    def test_add_assigns_id_and_persists(self, manga, kv):
        book = manga.add(MangaBook(title=" ワンピース ", author="  ", volume=1))
        assert book.title == "ワンピース"
        assert book.author is None
        assert len(book.book_id) == 36
        assert json.loads(kv.get("manga_books"))[0]["title"] == "ワンピース"
        assert [b.title for b in MangaStore(kv).all()] == ["ワンピース"]

    def test_blank_title_not_added(self, manga, kv):
        assert manga.add(MangaBook(title="   ")) is None
        assert len(manga) == 0
        assert kv.get("manga_books") is None

    def test_insertion_order(self, manga):
        manga.add(MangaBook(title="A"))
        manga.add(MangaBook(title="B"))
        assert [b.title for b in manga.all()] == ["A", "B"]

    def test_update_keeps_date_added(self, manga):
        book = manga.add(MangaBook(title="ナルト", volume=1))
        changed = MangaBook(title="ナルト", volume=2, book_id=book.book_id)
        manga.update(changed)
        stored = manga.get(book.book_id)
        assert stored.volume == 2
        assert stored.date_added == book.date_added

    def test_update_unknown_is_noop(self, manga, kv):
        manga.add(MangaBook(title="ナルト"))
        saved = kv.get("manga_books")
        manga.update(MangaBook(title="other", book_id="missing"))
        assert kv.get("manga_books") == saved

    def test_delete(self, manga, kv):
        book = manga.add(MangaBook(title="ナルト"))
        manga.delete(book.book_id)
        assert manga.get(book.book_id) is None
        assert len(MangaStore(kv)) == 0

    def test_add_entry_skips_existing_link(self, manga, kv):
        book = manga.add(MangaBook(title="ワンピース"))
        assert manga.add_entry(book.book_id, "e-yume")
        assert not manga.add_entry(book.book_id, "e-yume")
        assert MangaStore(kv).get(book.book_id).entry_ids == ["e-yume"]

    def test_add_entry_unknown_book(self, manga):
        assert not manga.add_entry("missing", "e-yume")

    def test_remove_entry(self, manga):
        book = manga.add(MangaBook(title="ワンピース"))
        manga.add_entry(book.book_id, "e-yume")
        assert manga.remove_entry(book.book_id, "e-yume")
        assert not manga.remove_entry(book.book_id, "e-yume")
        assert manga.get(book.book_id).entry_ids == []

    def test_write_failure_rolls_back(self, manga, kv):
        with patch.object(kv, "set", side_effect=StorageWriteError("disk full")):
            with pytest.raises(StorageWriteError):
                manga.add(MangaBook(title="ナルト"))
        assert len(manga) == 0

    def test_corrupt_primary_uses_backup(self, manga, kv):
        manga.add(MangaBook(title="ナルト"))
        kv.set("manga_books", "[{")
        assert [b.title for b in MangaStore(kv).all()] == ["ナルト"]

    def test_books_do_not_touch_entries_key(self, manga, kv):
        manga.add(MangaBook(title="ナルト"))
        assert kv.get("japanese_entries") is None


class TestSearchInBook:
    """Test search scoped to one book's linked entries."""

    def test_matches_word_romaji_and_meanings(self, entries):
        book = MangaBook(title="ワンピース", entry_ids=["e-yume", "e-nakama"])
        assert [e.romaji for e in search_in_book(book, entries, "YUME")] == ["yume"]
        assert [e.romaji for e in search_in_book(book, entries, "仲")] == ["nakama"]
        assert [e.romaji for e in search_in_book(book, entries, "friend")] == ["nakama"]

    def test_unlinked_entries_excluded(self, entries):
        book = MangaBook(title="ワンピース", entry_ids=["e-yume"])
        assert search_in_book(book, entries, "pirate") == []

    def test_empty_query_lists_linked_in_link_order(self, entries):
        book = MangaBook(title="ワンピース", entry_ids=["e-kaizoku", "e-yume"])
        assert [e.romaji for e in search_in_book(book, entries, "")] == ["kaizoku", "yume"]

    def test_dangling_ids_skipped(self, entries):
        book = MangaBook(title="ワンピース", entry_ids=["deleted", "e-yume"])
        assert [e.romaji for e in search_in_book(book, entries, "")] == ["yume"]
