"""Unicode and Japanese-specific normalization utilities.

Policy:
- Apply NFC early for consistency.
- For matching: fold width, lowercase, collapse whitespace, trim.
- Kana classification is by Unicode block; width folding uses jaconv
  and romaji comes from pykakasi's Hepburn output.
"""

from __future__ import annotations

import re
import unicodedata as ud
from functools import lru_cache

import jaconv
import pykakasi

_WS_RE = re.compile(r"\s+")

KATAKANA_START, KATAKANA_END = 0x30A0, 0x30FF


def normalize_text_nfc(text: str) -> str:
    """Apply Unicode NFC to input text (safe for None-like inputs)."""
    if text is None:
        return ""
    return ud.normalize("NFC", str(text))


def normalize_for_match(text: str) -> str:
    """Normalize text for case-insensitive matching.

    Steps: NFC -> width folding (jaconv) -> lowercase -> collapse whitespace and trim.
    Full-width latin typed through a Japanese IME matches plain ASCII, and
    half-width katakana matches full-width.
    """
    if not text:
        return ""
    t = jaconv.normalize(normalize_text_nfc(text)).lower()
    return _WS_RE.sub(" ", t).strip()


def is_katakana_char(ch: str) -> bool:
    return KATAKANA_START <= ord(ch) <= KATAKANA_END


def contains_katakana(text: str) -> bool:
    """True if any character of ``text`` falls in the katakana block."""
    return any(is_katakana_char(ch) for ch in text or "")


@lru_cache(maxsize=1)
def _kakasi() -> pykakasi.kakasi:
    return pykakasi.kakasi()


def kana_to_romaji(text: str) -> str:
    """Hepburn romanization of ``text`` via pykakasi.

    Kanji are read with pykakasi's dictionary; latin and punctuation pass
    through unchanged, so the result is deterministic for every input.
    """
    text = normalize_text_nfc(text)
    if not text:
        return ""
    return "".join(item["hepburn"] for item in _kakasi().convert(text)).lower()
