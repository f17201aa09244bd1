"""Service object exposing the vocabulary core to presentation layers.

One instance is created at startup and passed to whatever needs it. All
state (entry store, search engine, cache) is touched only from the thread
that owns the service. Large lexicon fetch/load runs on a single worker
thread; the worker returns parsed entries and pushes progress fractions
onto a queue, and ``process_pending`` applies both on the owner thread.
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import FetchInProgressError, GoiError
from .ingest import load_core_lexicon
from .jmdict import JMDictLoader, LoadResult, LoadStatus, ProgressCallback
from .manga import MangaStore, search_in_book
from .models import JLPTLevel, LexiconEntry, MangaBook, VocabularyEntry
from .search import SearchEngine
from .store import AddResult, EntryStore, KeyValueStore

logger = logging.getLogger(__name__)


class LargeLexiconState(Enum):
    NOT_DOWNLOADED = "not_downloaded"
    DOWNLOADED_NOT_LOADED = "downloaded_not_loaded"
    LOADED = "loaded"


@dataclass(frozen=True)
class LargeLexiconStatus:
    state: LargeLexiconState
    count: int = 0

    def describe(self) -> str:
        if self.state is LargeLexiconState.LOADED:
            return f"Loaded ({self.count} entries)"
        if self.state is LargeLexiconState.DOWNLOADED_NOT_LOADED:
            return "Downloaded, not loaded"
        return "Not downloaded"


class VocabularyService:
    def __init__(
        self,
        store: EntryStore,
        engine: SearchEngine,
        loader: JMDictLoader,
        manga: Optional[MangaStore] = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.loader = loader
        self.manga = manga if manga is not None else MangaStore(store.kv)
        self.last_error: Optional[GoiError] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="goi-jmdict")
        self._pending: Optional[Future] = None
        self._progress: "queue.Queue[float]" = queue.Queue()
        self._observer: Optional[ProgressCallback] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "VocabularyService":
        kv = KeyValueStore(cfg["store_dir"])
        store = EntryStore(kv, key=cfg["entries_key"])
        manga = MangaStore(kv, key=cfg["manga_key"])
        engine = SearchEngine(load_core_lexicon(), limit=cfg["search_limit"])
        loader = JMDictLoader(
            Path(cfg["jmdict_path"]),
            url=cfg["jmdict_url"],
            timeout=cfg["download_timeout"],
            chunk_size=cfg["chunk_size"],
        )
        return cls(store, engine, loader, manga)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.process_pending()

    def __enter__(self) -> "VocabularyService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Dictionary search

    def search(self, query: str) -> List[LexiconEntry]:
        self.process_pending()
        return self.engine.search(query)

    # User collection

    def add(self, candidate: VocabularyEntry) -> AddResult:
        return self.store.add(candidate)

    def update(self, entry: VocabularyEntry) -> None:
        self.store.update(entry)

    def delete(self, entry: VocabularyEntry) -> None:
        self.store.delete(entry)

    def get(self, entry_id: str) -> Optional[VocabularyEntry]:
        return self.store.get(entry_id)

    def get_all(self) -> List[VocabularyEntry]:
        return self.store.all()

    def filter_entries(
        self, query: str = "", jlpt_level: Optional[JLPTLevel] = None
    ) -> List[VocabularyEntry]:
        return self.store.filter_entries(query, jlpt_level)

    # Manga books

    def get_manga_books(self) -> List[MangaBook]:
        return self.manga.all()

    def add_manga_book(self, book: MangaBook) -> Optional[MangaBook]:
        return self.manga.add(book)

    def update_manga_book(self, book: MangaBook) -> None:
        self.manga.update(book)

    def delete_manga_book(self, book: MangaBook) -> None:
        self.manga.delete(book.book_id)

    def add_entry_to_manga(self, entry_id: str, book_id: str) -> bool:
        """Link a saved entry to a book; False for unknown ids or an existing link."""
        if self.store.get(entry_id) is None:
            return False
        return self.manga.add_entry(book_id, entry_id)

    def remove_entry_from_manga(self, entry_id: str, book_id: str) -> bool:
        return self.manga.remove_entry(book_id, entry_id)

    def search_in_manga(self, book_id: str, query: str = "") -> List[VocabularyEntry]:
        book = self.manga.get(book_id)
        if book is None:
            return []
        return search_in_book(book, self.store.all(), query)

    # Large lexicon

    @property
    def busy(self) -> bool:
        return self._pending is not None

    def _submit(self, job: Callable[[], LoadResult], observer: Optional[ProgressCallback]) -> Future:
        self.process_pending()
        if self._pending is not None:
            raise FetchInProgressError("A dictionary download or load is already running")
        self.last_error = None
        self._observer = observer
        self._pending = self._executor.submit(job)
        return self._pending

    def fetch_large_lexicon(self, progress: Optional[ProgressCallback] = None) -> Future:
        """Start downloading and loading the large lexicon on the worker thread.

        ``progress`` is called with fractions in [0, 1] from ``process_pending``,
        on the owner thread.
        """
        return self._submit(lambda: self.loader.fetch(self._progress.put), progress)

    def reload_large_lexicon(self) -> Future:
        """Load an already-downloaded payload without fetching."""
        return self._submit(self.loader.load, None)

    def process_pending(self) -> Optional[LoadResult]:
        """Deliver queued progress and apply a finished fetch/load, if any."""
        while True:
            try:
                fraction = self._progress.get_nowait()
            except queue.Empty:
                break
            if self._observer:
                self._observer(fraction)

        future = self._pending
        if future is None or not future.done():
            return None
        self._pending = None
        self._observer = None
        try:
            result = future.result()
        except GoiError as exc:
            logger.error("Large lexicon update failed: %s", exc)
            self.last_error = exc
            return None
        if result.status is LoadStatus.LOADED:
            self.engine.set_large_lexicon(result.entries)
            logger.info("Large lexicon now visible to search (%d entries)", result.count)
        else:
            logger.info("No downloaded dictionary to load")
        return result

    def wait_for_large_lexicon(
        self, timeout: Optional[float] = None, poll_interval: float = 0.1
    ) -> Optional[LoadResult]:
        """Block until the running fetch/load finishes, then apply it.

        Re-raises the worker's error. Returns None if nothing was running or
        the timeout expired first.
        """
        future = self._pending
        if future is None:
            return None
        deadline = None if timeout is None else time.monotonic() + timeout
        while not future.done():
            remaining = poll_interval
            if deadline is not None:
                remaining = min(poll_interval, deadline - time.monotonic())
                if remaining <= 0:
                    break
            wait([future], timeout=remaining)
            if not future.done():
                self.process_pending()
        if not future.done():
            self.process_pending()
            return None
        result = self.process_pending()
        if result is None and self.last_error is not None:
            raise self.last_error
        return result

    def large_lexicon_status(self) -> LargeLexiconStatus:
        self.process_pending()
        size = self.engine.large_size
        if size is not None:
            return LargeLexiconStatus(LargeLexiconState.LOADED, size)
        if self.loader.has_payload():
            return LargeLexiconStatus(LargeLexiconState.DOWNLOADED_NOT_LOADED)
        return LargeLexiconStatus(LargeLexiconState.NOT_DOWNLOADED)
