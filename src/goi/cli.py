"""CLI entrypoint for the Goi vocabulary core.

Usage:
  python -m goi.cli search gakkou
  python -m goi.cli add --word 学校 --romaji gakkou --meaning school --jlpt N5
  python -m goi.cli fetch-dictionary
  python -m goi.cli manga add --title ワンピース --volume 1
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import List, Optional

from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import GoiError
from .jmdict import LoadStatus
from .models import JLPTLevel, MangaBook, VocabularyEntry
from .report import (
    format_manga_book,
    format_search_results,
    format_vocabulary_entry,
    print_summary,
)
from .service import VocabularyService

logger = logging.getLogger(__name__)


def _jlpt(value: str) -> JLPTLevel:
    try:
        return JLPTLevel.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def cmd_search(service: VocabularyService, args: argparse.Namespace) -> int:
    for line in format_search_results(args.query, service.search(args.query)):
        print(line)
    return 0


def cmd_add(service: VocabularyService, args: argparse.Namespace) -> int:
    candidate = VocabularyEntry(
        headword=args.word,
        romaji=args.romaji,
        meanings=args.meaning or [],
        parts_of_speech=args.pos or [],
        hiragana=args.hiragana,
        katakana=args.katakana,
        jlpt_level=args.jlpt,
        source=args.source,
    )
    result = service.add(candidate)
    if not result.accepted:
        print(f"Not added: {result.message}")
        return 1
    print(f"Added: {format_vocabulary_entry(result.entry)}")
    return 0


def cmd_list(service: VocabularyService, args: argparse.Namespace) -> int:
    entries = service.filter_entries(args.query or "", args.jlpt)
    for entry in entries:
        print(format_vocabulary_entry(entry))
    if not entries:
        print("No vocabulary entries")
    if args.summary:
        print()
        print_summary(service.store.level_counts())
    return 0


def _by_prefix(items, prefix: str, id_of, label: str):
    # Accept a full id or the 8-character prefix shown by the listings.
    matches = [item for item in items if id_of(item).startswith(prefix)]
    if len(matches) != 1:
        print(f"Error: {'no' if not matches else 'ambiguous'} {label} matching id '{prefix}'")
        return None
    return matches[0]


def cmd_delete(service: VocabularyService, args: argparse.Namespace) -> int:
    entry = _by_prefix(service.get_all(), args.id, lambda e: e.entry_id, "entry")
    if entry is None:
        return 1
    service.delete(entry)
    print(f"Deleted: {entry.headword}")
    return 0


def _book(service: VocabularyService, prefix: str) -> Optional[MangaBook]:
    return _by_prefix(service.get_manga_books(), prefix, lambda b: b.book_id, "manga")


def cmd_manga_list(service: VocabularyService, args: argparse.Namespace) -> int:
    books = service.get_manga_books()
    for book in books:
        print(format_manga_book(book))
    if not books:
        print("No manga")
    return 0


def cmd_manga_add(service: VocabularyService, args: argparse.Namespace) -> int:
    book = service.add_manga_book(
        MangaBook(
            title=args.title,
            author=args.author,
            volume=args.volume,
            chapter=args.chapter,
            notes=args.notes or "",
        )
    )
    if book is None:
        print("Not added: a title is required")
        return 1
    print(f"Added: {format_manga_book(book)}")
    return 0


def cmd_manga_edit(service: VocabularyService, args: argparse.Namespace) -> int:
    book = _book(service, args.id)
    if book is None:
        return 1
    changes = {
        name: getattr(args, name)
        for name in ("title", "author", "volume", "chapter", "notes")
        if getattr(args, name) is not None
    }
    service.update_manga_book(replace(book, **changes))
    print(f"Updated: {format_manga_book(service.manga.get(book.book_id))}")
    return 0


def cmd_manga_delete(service: VocabularyService, args: argparse.Namespace) -> int:
    book = _book(service, args.id)
    if book is None:
        return 1
    service.delete_manga_book(book)
    print(f"Deleted: {book.title}")
    return 0


def cmd_manga_link(service: VocabularyService, args: argparse.Namespace) -> int:
    book = _book(service, args.book)
    entry = _by_prefix(service.get_all(), args.entry, lambda e: e.entry_id, "entry")
    if book is None or entry is None:
        return 1
    if args.unlink:
        changed = service.remove_entry_from_manga(entry.entry_id, book.book_id)
        print(f"Unlinked {entry.headword} from {book.title}" if changed else f"{entry.headword} is not in {book.title}")
    else:
        changed = service.add_entry_to_manga(entry.entry_id, book.book_id)
        print(f"Linked {entry.headword} to {book.title}" if changed else f"{entry.headword} is already in {book.title}")
    return 0


def cmd_manga_search(service: VocabularyService, args: argparse.Namespace) -> int:
    book = _book(service, args.id)
    if book is None:
        return 1
    entries = service.search_in_manga(book.book_id, args.query or "")
    for entry in entries:
        print(format_vocabulary_entry(entry))
    if not entries:
        print(f"No words found in {book.title}")
    return 0


def _print_progress(fraction: float) -> None:
    print(f"  {int(fraction * 100)}%", flush=True)


def cmd_fetch_dictionary(service: VocabularyService, args: argparse.Namespace) -> int:
    print(f"Downloading dictionary from: {service.loader.url}")
    service.fetch_large_lexicon(progress=_print_progress)
    result = service.wait_for_large_lexicon()
    print(f"Loaded {result.count if result else 0} dictionary entries")
    return 0


def cmd_load_dictionary(service: VocabularyService, args: argparse.Namespace) -> int:
    service.reload_large_lexicon()
    result = service.wait_for_large_lexicon()
    if result is None or result.status is LoadStatus.NOT_FOUND:
        print("No downloaded dictionary found; run fetch-dictionary first")
        return 1
    print(f"Loaded {result.count} dictionary entries")
    return 0


def cmd_status(service: VocabularyService, args: argparse.Namespace) -> int:
    print(f"Core dictionary entries: {service.engine.core_size}")
    print(f"Full dictionary: {service.large_lexicon_status().describe()}")
    print(f"Saved vocabulary: {len(service.store)}")
    print(f"Manga books: {len(service.manga)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="goi", description="Japanese vocabulary notebook")
    p.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config JSON (optional; defaults are used if missing, default: {DEFAULT_CONFIG_PATH})",
    )
    p.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    search = sub.add_parser("search", help="Search the dictionary")
    search.add_argument("query", help="Word, kana, romaji or English meaning")
    search.set_defaults(func=cmd_search)

    add = sub.add_parser("add", help="Add a word to your vocabulary")
    add.add_argument("--word", required=True, help="Word as written (kanji or kana)")
    add.add_argument("--romaji", required=True, help="Romaji reading")
    add.add_argument("--meaning", action="append", help="English meaning (repeatable)")
    add.add_argument("--hiragana", help="Hiragana reading")
    add.add_argument("--katakana", help="Katakana reading")
    add.add_argument("--pos", action="append", help="Part of speech (repeatable)")
    add.add_argument("--jlpt", type=_jlpt, help="JLPT level N5..N1")
    add.add_argument("--source", help="Where you found it, e.g. 'One Piece Ch.1, Page 5'")
    add.set_defaults(func=cmd_add)

    lst = sub.add_parser("list", help="List saved vocabulary, newest first")
    lst.add_argument("--query", help="Filter by word, reading, meaning or source")
    lst.add_argument("--jlpt", type=_jlpt, help="Only entries at this JLPT level")
    lst.add_argument("--summary", action="store_true", help="Print counts per JLPT level")
    lst.set_defaults(func=cmd_list)

    delete = sub.add_parser("delete", help="Delete a saved word by id")
    delete.add_argument("id", help="Entry id or the prefix shown by `list`")
    delete.set_defaults(func=cmd_delete)

    manga = sub.add_parser("manga", help="Manage manga books and the words found in them")
    manga_sub = manga.add_subparsers(dest="manga_cmd", required=True)

    m_list = manga_sub.add_parser("list", help="List manga books")
    m_list.set_defaults(func=cmd_manga_list)

    m_add = manga_sub.add_parser("add", help="Add a manga book")
    m_add.add_argument("--title", required=True)
    m_add.add_argument("--author")
    m_add.add_argument("--volume", type=int)
    m_add.add_argument("--chapter")
    m_add.add_argument("--notes")
    m_add.set_defaults(func=cmd_manga_add)

    m_edit = manga_sub.add_parser("edit", help="Change fields of a manga book")
    m_edit.add_argument("id", help="Manga id or the prefix shown by `manga list`")
    m_edit.add_argument("--title")
    m_edit.add_argument("--author")
    m_edit.add_argument("--volume", type=int)
    m_edit.add_argument("--chapter")
    m_edit.add_argument("--notes")
    m_edit.set_defaults(func=cmd_manga_edit)

    m_delete = manga_sub.add_parser("delete", help="Delete a manga book (its words stay saved)")
    m_delete.add_argument("id", help="Manga id or the prefix shown by `manga list`")
    m_delete.set_defaults(func=cmd_manga_delete)

    m_link = manga_sub.add_parser("link", help="Link a saved word to a manga book")
    m_link.add_argument("book", help="Manga id or prefix")
    m_link.add_argument("entry", help="Entry id or prefix")
    m_link.add_argument("--unlink", action="store_true", help="Remove the link instead")
    m_link.set_defaults(func=cmd_manga_link)

    m_search = manga_sub.add_parser("search", help="Search the words linked to a manga book")
    m_search.add_argument("id", help="Manga id or prefix")
    m_search.add_argument("query", nargs="?", help="Word, romaji or meaning; omit to list all")
    m_search.set_defaults(func=cmd_manga_search)

    fetch = sub.add_parser("fetch-dictionary", help="Download and load the full JMDict dictionary")
    fetch.set_defaults(func=cmd_fetch_dictionary)

    load = sub.add_parser("load-dictionary", help="Load a previously downloaded JMDict file")
    load.set_defaults(func=cmd_load_dictionary)

    status = sub.add_parser("status", help="Show dictionary and vocabulary status")
    status.set_defaults(func=cmd_status)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = load_config(args.config)
    except GoiError as e:
        print(f"Error: {e}")
        return 1
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else cfg["log_level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    with VocabularyService.from_config(cfg) as service:
        try:
            return args.func(service, args)
        except GoiError as e:
            logger.debug("Command failed", exc_info=True)
            print(f"Error: {e}")
            return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
