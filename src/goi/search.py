"""Dictionary search over the core and large lexicons.

Results are core entries first, then large-lexicon entries, deduplicated
by (headword, romaji) with the first occurrence kept, truncated to the
limit and cached per normalized query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import LexiconEntry
from .normalize import normalize_for_match

DEFAULT_LIMIT = 100


@dataclass(frozen=True)
class Lexicon:
    """Immutable snapshot of searchable entries.

    Entries without a non-empty meaning are dropped on construction.
    """

    name: str
    entries: Tuple[LexiconEntry, ...]
    # Lowercased searchable texts, aligned with ``entries``.
    _haystacks: Tuple[Tuple[str, ...], ...] = field(repr=False, compare=False, default=())

    @classmethod
    def build(cls, name: str, entries: Iterable[LexiconEntry]) -> "Lexicon":
        kept = tuple(e for e in entries if any(m.strip() for m in e.meanings))
        haystacks = tuple(
            tuple(normalize_for_match(t) for t in e.searchable_texts() if t) for e in kept
        )
        return cls(name=name, entries=kept, _haystacks=haystacks)

    def __len__(self) -> int:
        return len(self.entries)

    def matching(self, needle: str) -> List[LexiconEntry]:
        return [
            entry
            for entry, texts in zip(self.entries, self._haystacks)
            if any(needle in t for t in texts)
        ]


class SearchEngine:
    """Substring search with a query cache.

    ``scan_count`` counts lexicon scans; a cache hit leaves it unchanged.
    """

    def __init__(self, core: Sequence[LexiconEntry] = (), limit: int = DEFAULT_LIMIT) -> None:
        self.limit = limit
        self._core = Lexicon.build("core", core)
        self._large: Optional[Lexicon] = None
        self._cache: Dict[str, List[LexiconEntry]] = {}
        self.scan_count = 0

    @property
    def core_size(self) -> int:
        return len(self._core)

    @property
    def large_size(self) -> Optional[int]:
        return len(self._large) if self._large is not None else None

    def set_large_lexicon(self, entries: Sequence[LexiconEntry]) -> None:
        """Swap in a fully parsed large lexicon and drop cached results."""
        self._large = Lexicon.build("large", entries)
        self.clear_cache()

    def clear_cache(self) -> None:
        self._cache.clear()

    def search(self, query: str) -> List[LexiconEntry]:
        needle = normalize_for_match(query)
        if not needle:
            return []
        cached = self._cache.get(needle)
        if cached is not None:
            return list(cached)

        self.scan_count += 1
        candidates = self._core.matching(needle)
        if self._large is not None:
            candidates.extend(self._large.matching(needle))

        results: List[LexiconEntry] = []
        seen: Set[Tuple[str, str]] = set()
        for entry in candidates:
            key = entry.match_key
            if key in seen:
                continue
            seen.add(key)
            results.append(entry)
            if len(results) >= self.limit:
                break

        self._cache[needle] = results
        return list(results)
