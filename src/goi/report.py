"""Plain-text rendering of search hits and collection entries for the CLI."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .models import LexiconEntry, MangaBook, VocabularyEntry


def format_lexicon_entry(entry: LexiconEntry) -> str:
    kana = entry.hiragana or entry.katakana
    reading = f" [{kana}]" if kana and kana != entry.display_word else ""
    level = f" ({entry.jlpt_level.value})" if entry.jlpt_level else ""
    return f"{entry.display_word}{reading} {entry.romaji}{level}: {'; '.join(entry.meanings)}"


def format_vocabulary_entry(entry: VocabularyEntry) -> str:
    kana = entry.hiragana or entry.katakana
    reading = f" [{kana}]" if kana and kana != entry.headword else ""
    level = f" ({entry.jlpt_level.value})" if entry.jlpt_level else ""
    line = f"{entry.entry_id[:8]}  {entry.headword}{reading} {entry.romaji}{level}: {'; '.join(entry.meanings)}"
    if entry.source:
        line += f"  <- {entry.source}"
    return line


def format_search_results(query: str, results: Iterable[LexiconEntry]) -> List[str]:
    results = list(results)
    if not results:
        return [f'No results found for "{query}"']
    lines = [format_lexicon_entry(r) for r in results]
    lines.append(f"{len(results)} results")
    return lines


def print_summary(counts: Dict[str, int]) -> None:
    """Print per-level counts as produced by ``EntryStore.level_counts``."""
    total = sum(counts.values())
    print("Vocabulary Summary:")
    for level, count in counts.items():
        print(f"  {level:>5}: {count}")
    print(f"  total: {total}")


def format_manga_book(book: MangaBook) -> str:
    details = []
    if book.author:
        details.append(book.author)
    if book.volume is not None:
        details.append(f"vol. {book.volume}")
    if book.chapter:
        details.append(f"ch. {book.chapter}")
    line = f"{book.book_id[:8]}  {book.title}"
    if details:
        line += f" ({', '.join(details)})"
    line += f"  [{len(book.entry_ids)} words]"
    if book.notes:
        line += f"  {book.notes}"
    return line
