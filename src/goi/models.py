"""Record types shared by the lexicons, the search engine and the entry store."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .normalize import normalize_for_match


class JLPTLevel(Enum):
    """JLPT proficiency tiers, declared easiest first."""

    N5 = "N5"
    N4 = "N4"
    N3 = "N3"
    N2 = "N2"
    N1 = "N1"

    @property
    def rank(self) -> int:
        # N5 -> 0 ... N1 -> 4
        return list(JLPTLevel).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, JLPTLevel):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: Any) -> Optional["JLPTLevel"]:
        """Parse ``"N3"``/``"n3"``/``JLPTLevel.N3``; ``None``/``""`` -> ``None``.

        Raises ValueError for anything that is not one of the five levels.
        """
        if value is None or value == "":
            return None
        if isinstance(value, JLPTLevel):
            return value
        text = str(value).strip().upper()
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Invalid JLPT level: {value!r}") from None


def new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(text: str) -> datetime:
    """ISO-8601 to an aware datetime; a timestamp without an offset is taken as UTC."""
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class LexiconEntry:
    """Immutable dictionary entry from the core or the large lexicon.

    Equality covers the text fields only; ``entry_id`` is excluded.
    """

    headword: str
    romaji: str
    meanings: Tuple[str, ...]
    parts_of_speech: Tuple[str, ...] = ()
    hiragana: Optional[str] = None
    katakana: Optional[str] = None
    jlpt_level: Optional[JLPTLevel] = None
    frequency: Optional[int] = None
    kanji_form: Optional[str] = None
    entry_id: str = field(default_factory=new_id, compare=False)

    @property
    def display_word(self) -> str:
        return self.kanji_form or self.headword

    @property
    def primary_kana(self) -> str:
        return self.hiragana or self.katakana or self.romaji

    @property
    def match_key(self) -> Tuple[str, str]:
        """Composite dedup key: (lowercased headword, lowercased romaji)."""
        return (normalize_for_match(self.headword), normalize_for_match(self.romaji))

    def searchable_texts(self) -> List[str]:
        texts = [self.headword, self.romaji]
        if self.hiragana:
            texts.append(self.hiragana)
        if self.katakana:
            texts.append(self.katakana)
        texts.extend(self.meanings)
        if self.kanji_form:
            texts.append(self.kanji_form)
        return texts


@dataclass
class VocabularyEntry:
    """A word the user saved to their personal collection."""

    headword: str
    romaji: str
    meanings: List[str]
    parts_of_speech: List[str] = field(default_factory=list)
    hiragana: Optional[str] = None
    katakana: Optional[str] = None
    jlpt_level: Optional[JLPTLevel] = None
    source: Optional[str] = None
    entry_id: str = field(default_factory=new_id)
    date_added: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_lexicon(cls, entry: LexiconEntry, source: Optional[str] = None) -> "VocabularyEntry":
        """Build a collection candidate from a dictionary search hit."""
        return cls(
            headword=entry.display_word,
            romaji=entry.romaji,
            meanings=list(entry.meanings),
            parts_of_speech=list(entry.parts_of_speech),
            hiragana=entry.hiragana,
            katakana=entry.katakana,
            jlpt_level=entry.jlpt_level,
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entry_id,
            "word": self.headword,
            "hiragana": self.hiragana,
            "katakana": self.katakana,
            "romaji": self.romaji,
            "meanings": list(self.meanings),
            "partOfSpeech": list(self.parts_of_speech),
            "jlptLevel": self.jlpt_level.value if self.jlpt_level else None,
            "source": self.source,
            "dateAdded": self.date_added.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyEntry":
        """Inverse of :meth:`to_dict`. Raises KeyError/ValueError/TypeError on bad input."""
        if not isinstance(data, dict):
            raise TypeError(f"Expected an object, got {type(data).__name__}")
        meanings = data["meanings"]
        pos = data.get("partOfSpeech") or []
        if not isinstance(meanings, list) or not isinstance(pos, list):
            raise TypeError("meanings and partOfSpeech must be lists")
        return cls(
            entry_id=str(data["id"]),
            headword=str(data["word"]),
            romaji=str(data["romaji"]),
            meanings=[str(m) for m in meanings],
            parts_of_speech=[str(p) for p in pos],
            hiragana=data.get("hiragana"),
            katakana=data.get("katakana"),
            jlpt_level=JLPTLevel.parse(data.get("jlptLevel")),
            source=data.get("source"),
            date_added=parse_timestamp(data["dateAdded"]),
        )


@dataclass
class MangaBook:
    """A manga the user reads, with the ids of collection entries found in it."""

    title: str
    author: Optional[str] = None
    volume: Optional[int] = None
    chapter: Optional[str] = None
    notes: str = ""
    entry_ids: List[str] = field(default_factory=list)
    book_id: str = field(default_factory=new_id)
    date_added: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.book_id,
            "title": self.title,
            "author": self.author,
            "volume": self.volume,
            "chapter": self.chapter,
            "notes": self.notes,
            "vocabularyEntries": list(self.entry_ids),
            "dateAdded": self.date_added.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MangaBook":
        if not isinstance(data, dict):
            raise TypeError(f"Expected an object, got {type(data).__name__}")
        entry_ids = data.get("vocabularyEntries") or []
        if not isinstance(entry_ids, list):
            raise TypeError("vocabularyEntries must be a list")
        volume = data.get("volume")
        if volume is not None and (isinstance(volume, bool) or not isinstance(volume, int)):
            raise TypeError(f"volume must be an integer, got {volume!r}")
        return cls(
            book_id=str(data["id"]),
            title=str(data["title"]),
            author=data.get("author"),
            volume=volume,
            chapter=data.get("chapter"),
            notes=data.get("notes") or "",
            entry_ids=[str(i) for i in entry_ids],
            date_added=parse_timestamp(data["dateAdded"]),
        )
