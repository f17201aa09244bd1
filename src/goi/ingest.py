"""Core lexicon ingest from the bundled JSON resource.

Schema: a JSON array of flat records with ``word``, ``romaji`` (required),
``hiragana``, ``katakana``, ``meanings``, ``partOfSpeech``, ``jlptLevel``,
``kanji`` and ``frequency`` (optional). UTF-8.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import MalformedResourceError
from .models import JLPTLevel, LexiconEntry

logger = logging.getLogger(__name__)

CORE_LEXICON_PATH = Path(__file__).parent / "resources" / "core_lexicon.json"

REQUIRED_FIELDS = ("word", "romaji")


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _text_list(record: dict, key: str, index: int) -> List[str]:
    values = record.get(key) or []
    if not isinstance(values, list):
        raise MalformedResourceError(f"Record {index}: '{key}' must be a list")
    return [str(v).strip() for v in values if str(v).strip()]


def parse_core_records(records: Iterable[dict]) -> List[LexiconEntry]:
    """Convert raw resource records to lexicon entries.

    Any record missing a required field fails the whole batch.
    """
    entries: List[LexiconEntry] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise MalformedResourceError(f"Record {index} is not an object")
        missing = [f for f in REQUIRED_FIELDS if not _optional_text(record.get(f))]
        if missing:
            raise MalformedResourceError(f"Record {index} missing required fields: {missing}")
        try:
            level = JLPTLevel.parse(record.get("jlptLevel"))
        except ValueError as exc:
            raise MalformedResourceError(f"Record {index}: {exc}") from exc
        frequency = record.get("frequency")
        if frequency is not None and not isinstance(frequency, int):
            raise MalformedResourceError(f"Record {index}: 'frequency' must be an integer")
        entries.append(
            LexiconEntry(
                headword=str(record["word"]).strip(),
                romaji=str(record["romaji"]).strip(),
                meanings=tuple(_text_list(record, "meanings", index)),
                parts_of_speech=tuple(_text_list(record, "partOfSpeech", index)),
                hiragana=_optional_text(record.get("hiragana")),
                katakana=_optional_text(record.get("katakana")),
                jlpt_level=level,
                frequency=frequency,
                kanji_form=_optional_text(record.get("kanji")),
            )
        )
    return entries


def read_core_lexicon(path: str | Path | None = None) -> List[LexiconEntry]:
    """Read and parse the bundled resource. Raises MalformedResourceError."""
    path = Path(path) if path else CORE_LEXICON_PATH
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedResourceError(f"Cannot read core lexicon {path}: {exc}") from exc
    if not isinstance(records, list):
        raise MalformedResourceError(f"Core lexicon {path} must contain a JSON array")
    return parse_core_records(records)


def load_core_lexicon(path: str | Path | None = None) -> List[LexiconEntry]:
    """Load the core lexicon, degrading to an empty list on a malformed resource."""
    try:
        entries = read_core_lexicon(path)
    except MalformedResourceError as exc:
        logger.error("Core lexicon unavailable, continuing without it: %s", exc)
        return []
    logger.info("Loaded %d core lexicon entries", len(entries))
    return entries
