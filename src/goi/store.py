"""User vocabulary collection and its key-value persistence.

The whole collection is serialized to JSON under one key on every
mutation; after a successful write the same payload is copied to a
backup key, which is the fallback read path if the primary cannot be
decoded.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar

from .detect_duplicates import DuplicateMatch, find_duplicate
from .errors import DecodingError, StorageWriteError
from .models import JLPTLevel, VocabularyEntry, new_id
from .normalize import normalize_for_match

logger = logging.getLogger(__name__)

DEFAULT_ENTRIES_KEY = "japanese_entries"
BACKUP_SUFFIX = "_backup"

T = TypeVar("T")


class KeyValueStore:
    """Directory-backed string store; one ``<key>.json`` file per key."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        """Write ``value`` atomically: readers see the old or the new text, never a mix."""
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            finally:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
        except OSError as exc:
            raise StorageWriteError(f"Cannot write key '{key}' to {path}: {exc}") from exc


def save_with_backup(kv: KeyValueStore, key: str, backup_key: str, payload: str) -> None:
    """Write ``payload`` under ``key``, then copy it to ``backup_key``.

    Only the primary write can fail the save. Once it has landed, a failed
    backup copy is logged and the stale backup is left for the next save.
    """
    kv.set(key, payload)
    try:
        kv.set(backup_key, payload)
    except StorageWriteError as exc:
        logger.warning("Backup key '%s' not updated: %s", backup_key, exc)


def restore_with_backup(
    kv: KeyValueStore, key: str, backup_key: str, decode: Callable[[str], List[T]]
) -> List[T]:
    """Decode ``key``, falling back to ``backup_key``; empty if neither is usable."""
    for candidate_key in (key, backup_key):
        try:
            text = kv.get(candidate_key)
            if text is None:
                continue
            items = decode(text)
        except (OSError, UnicodeDecodeError, DecodingError) as exc:
            logger.warning("Key '%s' unreadable: %s", candidate_key, exc)
            continue
        if candidate_key == backup_key:
            logger.warning("Restored %d records from backup key '%s'", len(items), backup_key)
        return items
    return []


def serialize_entries(entries: List[VocabularyEntry]) -> str:
    return json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2)


def deserialize_entries(text: str) -> List[VocabularyEntry]:
    try:
        raw = json.loads(text)
        if not isinstance(raw, list):
            raise TypeError("collection must be a JSON array")
        return [VocabularyEntry.from_dict(item) for item in raw]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise DecodingError(f"Cannot decode vocabulary collection: {exc}") from exc


class AddOutcome(Enum):
    ACCEPTED = "accepted"
    REJECTED_DUPLICATE = "rejected_duplicate"
    INVALID = "invalid"


@dataclass(frozen=True)
class AddResult:
    outcome: AddOutcome
    entry: Optional[VocabularyEntry] = None
    duplicate: Optional[DuplicateMatch] = None
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.outcome is AddOutcome.ACCEPTED


def _clean_candidate(candidate: VocabularyEntry) -> Optional[VocabularyEntry]:
    """Trim fields and drop blank meanings; None if a required field is empty."""
    headword = (candidate.headword or "").strip()
    romaji = (candidate.romaji or "").strip()
    meanings = [m.strip() for m in candidate.meanings if m and m.strip()]
    if not headword or not romaji or not meanings:
        return None
    return replace(
        candidate,
        headword=headword,
        romaji=romaji,
        meanings=meanings,
        hiragana=(candidate.hiragana or "").strip() or None,
        katakana=(candidate.katakana or "").strip() or None,
        source=(candidate.source or "").strip() or None,
    )


class EntryStore:
    """In-memory collection of the user's vocabulary, persisted on every mutation."""

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_ENTRIES_KEY) -> None:
        self.kv = kv
        self.key = key
        self.backup_key = key + BACKUP_SUFFIX
        self._entries: List[VocabularyEntry] = self._restore()

    def _restore(self) -> List[VocabularyEntry]:
        return restore_with_backup(self.kv, self.key, self.backup_key, deserialize_entries)

    def _save(self) -> None:
        save_with_backup(self.kv, self.key, self.backup_key, serialize_entries(self._entries))
        logger.debug("Saved %d entries", len(self._entries))

    def _commit(self, previous: List[VocabularyEntry]) -> None:
        try:
            self._save()
        except StorageWriteError:
            self._entries = previous
            raise

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[VocabularyEntry]:
        for entry in self._entries:
            if entry.entry_id == entry_id:
                return entry
        return None

    def add(self, candidate: VocabularyEntry) -> AddResult:
        cleaned = _clean_candidate(candidate)
        if cleaned is None:
            return AddResult(
                AddOutcome.INVALID,
                message="A word, its romaji and at least one meaning are required",
            )
        match = find_duplicate(cleaned, self._entries)
        if match is not None:
            logger.info("Rejected '%s' as duplicate (%s)", cleaned.headword, match.match_reason)
            return AddResult(
                AddOutcome.REJECTED_DUPLICATE,
                duplicate=match,
                message=f"This word already exists in your vocabulary ({match.match_reason})",
            )
        entry = replace(cleaned, entry_id=new_id(), date_added=datetime.now(timezone.utc))
        previous = list(self._entries)
        self._entries.append(entry)
        self._commit(previous)
        return AddResult(AddOutcome.ACCEPTED, entry=entry)

    def update(self, entry: VocabularyEntry) -> None:
        """Replace the entry with the same id; unknown ids are ignored.

        ``date_added`` of the stored entry is kept.
        """
        for index, existing in enumerate(self._entries):
            if existing.entry_id == entry.entry_id:
                previous = list(self._entries)
                self._entries[index] = replace(entry, date_added=existing.date_added)
                self._commit(previous)
                return
        logger.debug("update ignored, no entry with id %s", entry.entry_id)

    def delete(self, entry: VocabularyEntry) -> None:
        remaining = [e for e in self._entries if e.entry_id != entry.entry_id]
        if len(remaining) == len(self._entries):
            return
        previous = self._entries
        self._entries = remaining
        self._commit(previous)

    def all(self) -> List[VocabularyEntry]:
        """All entries, newest first."""
        return sorted(self._entries, key=lambda e: e.date_added, reverse=True)

    def filter_entries(
        self, query: str = "", jlpt_level: Optional[JLPTLevel] = None
    ) -> List[VocabularyEntry]:
        needle = normalize_for_match(query)
        results = []
        for entry in self.all():
            if jlpt_level is not None and entry.jlpt_level is not jlpt_level:
                continue
            if needle:
                texts = [entry.headword, entry.romaji, "".join(entry.meanings),
                         entry.hiragana, entry.katakana, entry.source]
                if not any(t and needle in normalize_for_match(t) for t in texts):
                    continue
            results.append(entry)
        return results

    def level_counts(self) -> Dict[str, int]:
        """Entry count per JLPT level, easiest first, plus ``"none"`` for unleveled."""
        counts: Dict[str, int] = {level.value: 0 for level in JLPTLevel}
        counts["none"] = 0
        for entry in self._entries:
            counts[entry.jlpt_level.value if entry.jlpt_level else "none"] += 1
        return counts
