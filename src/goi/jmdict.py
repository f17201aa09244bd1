"""JMDict (jmdict-simplified JSON) download and parsing.

Payload shape::

    {"version": "...", "languages": ["eng"], "words": [
        {"id": "...",
         "kanji": [{"common": true, "text": "学校", "tags": []}],
         "kana": [{"common": true, "text": "がっこう", "tags": [], "appliesToKanji": ["*"]}],
         "sense": [{"partOfSpeech": ["n"], "gloss": [{"lang": "eng", "text": "school"}]}]}
    ]}

``fetch`` streams the payload to a temporary file next to the target path
and moves it into place only once complete, then parses that same file.
``load`` is all-or-nothing: a parse failure raises before any entries are
handed back.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import requests

from .errors import NetworkError, ParseError, StorageWriteError
from .models import LexiconEntry
from .normalize import contains_katakana, kana_to_romaji

logger = logging.getLogger(__name__)

JMDICT_URL = "https://raw.githubusercontent.com/scriptin/jmdict-simplified/master/jmdict-eng-3.1.0.json"

MAX_MEANINGS = 5
MAX_PARTS_OF_SPEECH = 3
ENGLISH_LANGS = {None, "", "eng", "en"}

ProgressCallback = Callable[[float], None]


class LoadStatus(Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LoadResult:
    status: LoadStatus
    entries: Tuple[LexiconEntry, ...] = ()

    @property
    def count(self) -> int:
        return len(self.entries)


def _dedupe(values, limit: int) -> List[str]:
    seen: List[str] = []
    for v in values:
        if v and v not in seen:
            seen.append(v)
            if len(seen) >= limit:
                break
    return seen


def _pick(forms: List[dict]) -> Optional[dict]:
    """Prefer a form flagged common, else the first one."""
    for form in forms:
        if form.get("common"):
            return form
    return forms[0] if forms else None


def _forms(word: dict, key: str, index: int, required: bool) -> List[dict]:
    if key not in word or word[key] is None:
        if required:
            raise ParseError(f"Word {index}: missing '{key}'")
        return []
    forms = word[key]
    if not isinstance(forms, list):
        raise ParseError(f"Word {index}: '{key}' must be a list")
    for form in forms:
        if not isinstance(form, dict) or not isinstance(form.get("text"), str):
            raise ParseError(f"Word {index}: every '{key}' element needs a 'text' string")
    return forms


def convert_word(word: dict, index: int = 0) -> Optional[LexiconEntry]:
    """Normalize one lexical unit. Returns None when it has no English gloss."""
    if not isinstance(word, dict):
        raise ParseError(f"Word {index} is not an object")
    kanji_forms = _forms(word, "kanji", index, required=False)
    kana_forms = _forms(word, "kana", index, required=True)
    senses = word.get("sense")
    if not isinstance(senses, list):
        raise ParseError(f"Word {index}: 'sense' must be a list")

    glosses: List[str] = []
    pos: List[str] = []
    for sense in senses:
        if not isinstance(sense, dict):
            raise ParseError(f"Word {index}: sense is not an object")
        gloss_list = sense.get("gloss") or []
        if not isinstance(gloss_list, list):
            raise ParseError(f"Word {index}: 'gloss' must be a list")
        for gloss in gloss_list:
            if not isinstance(gloss, dict) or not isinstance(gloss.get("text"), str):
                raise ParseError(f"Word {index}: gloss needs a 'text' string")
            if gloss.get("lang") in ENGLISH_LANGS:
                glosses.append(gloss["text"].strip())
        pos.extend(str(p) for p in (sense.get("partOfSpeech") or []))

    meanings = _dedupe(glosses, MAX_MEANINGS)
    if not meanings:
        return None

    kanji = _pick(kanji_forms)
    kana = _pick(kana_forms)
    kana_text = kana["text"] if kana else None
    headword = kanji["text"] if kanji else kana_text
    if not headword:
        return None

    hiragana = katakana = None
    if kana_text:
        if contains_katakana(kana_text):
            katakana = kana_text
        else:
            hiragana = kana_text

    return LexiconEntry(
        headword=headword,
        romaji=kana_to_romaji(kana_text or headword),
        meanings=tuple(meanings),
        parts_of_speech=tuple(_dedupe(pos, MAX_PARTS_OF_SPEECH)),
        hiragana=hiragana,
        katakana=katakana,
    )


def parse_payload(document) -> List[LexiconEntry]:
    """Convert a decoded payload document to lexicon entries. Raises ParseError."""
    if not isinstance(document, dict):
        raise ParseError("Payload root must be an object")
    words = document.get("words")
    if not isinstance(words, list):
        raise ParseError("Payload has no 'words' list")
    entries: List[LexiconEntry] = []
    dropped = 0
    for index, word in enumerate(words):
        entry = convert_word(word, index)
        if entry is None:
            dropped += 1
            continue
        entries.append(entry)
    logger.debug(
        "Parsed JMDict %s: %d entries, %d without English glosses",
        document.get("version", "?"), len(entries), dropped,
    )
    return entries


class JMDictLoader:
    """Downloads and parses the large lexicon payload.

    Stateless apart from the payload file on disk; the caller owns the
    parsed entries and decides when to make them visible.
    """

    def __init__(
        self,
        payload_path: str | Path,
        url: str = JMDICT_URL,
        timeout: float = 60,
        chunk_size: int = 65536,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.payload_path = Path(payload_path)
        self.url = url
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._session = session

    def has_payload(self) -> bool:
        return self.payload_path.is_file()

    def _get(self):
        getter = self._session.get if self._session is not None else requests.get
        return getter(self.url, stream=True, timeout=self.timeout)

    def download(self, progress: Optional[ProgressCallback] = None) -> Path:
        """Stream the payload to ``payload_path``. Existing file is kept on failure."""
        logger.info("Downloading JMDict from %s", self.url)
        try:
            self.payload_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=self.payload_path.name + ".", suffix=".part", dir=self.payload_path.parent
            )
        except OSError as exc:
            raise StorageWriteError(f"Cannot create {self.payload_path.parent}: {exc}") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                self._stream_into(out, progress)
            os.replace(tmp_path, self.payload_path)
        except OSError as exc:
            raise StorageWriteError(f"Cannot write {self.payload_path}: {exc}") from exc
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        if progress:
            progress(1.0)
        logger.info("JMDict saved to %s", self.payload_path)
        return self.payload_path

    def _stream_into(self, out, progress: Optional[ProgressCallback]) -> None:
        try:
            with self._get() as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0)
                received = 0
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if not chunk:
                        continue
                    out.write(chunk)
                    received += len(chunk)
                    if progress and total:
                        progress(min(received / total, 1.0))
        except requests.RequestException as exc:
            raise NetworkError(f"Download failed: {exc}") from exc

    def fetch(self, progress: Optional[ProgressCallback] = None) -> LoadResult:
        """Download the payload, then load the file that download produced."""
        self.download(progress)
        return self.load()

    def load(self) -> LoadResult:
        """Parse the local payload. ``NOT_FOUND`` if nothing was downloaded yet."""
        if not self.has_payload():
            return LoadResult(LoadStatus.NOT_FOUND)
        try:
            with self.payload_path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ParseError(f"Invalid JMDict payload {self.payload_path}: {exc}") from exc
        except OSError as exc:
            raise ParseError(f"Cannot read {self.payload_path}: {exc}") from exc
        entries = parse_payload(document)
        logger.info("Loaded %d JMDict entries", len(entries))
        return LoadResult(LoadStatus.LOADED, tuple(entries))
