"""Duplicate detection for candidate vocabulary entries.

A candidate duplicates a stored entry when any of these match
(case-insensitive), checked in this order:
- headword
- romaji (homophones with different kanji collide too)
- hiragana, when both entries have one
- katakana, when both entries have one
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .models import VocabularyEntry
from .normalize import normalize_for_match


@dataclass(frozen=True)
class DuplicateMatch:
    entry_id: str
    match_reason: str  # "headword-match" | "romaji-match" | "hiragana-match" | "katakana-match"


def _optional_key(text: Optional[str]) -> str:
    return normalize_for_match(text) if text else ""


def match_reason(candidate: VocabularyEntry, existing: VocabularyEntry) -> Optional[str]:
    """Return the first matching field reason, or None if the entries are distinct."""
    if normalize_for_match(candidate.headword) == normalize_for_match(existing.headword):
        return "headword-match"
    if normalize_for_match(candidate.romaji) == normalize_for_match(existing.romaji):
        return "romaji-match"
    hira = _optional_key(candidate.hiragana)
    if hira and hira == _optional_key(existing.hiragana):
        return "hiragana-match"
    kata = _optional_key(candidate.katakana)
    if kata and kata == _optional_key(existing.katakana):
        return "katakana-match"
    return None


def find_duplicate(
    candidate: VocabularyEntry, entries: Iterable[VocabularyEntry]
) -> Optional[DuplicateMatch]:
    """Return the first stored entry the candidate duplicates, if any."""
    for existing in entries:
        reason = match_reason(candidate, existing)
        if reason:
            return DuplicateMatch(entry_id=existing.entry_id, match_reason=reason)
    return None
