"""Goi: Japanese vocabulary notebook core.

Dictionary search over a bundled core lexicon and the optional JMDict
download, plus the user's own collection with duplicate detection and
the manga books its words were found in.
"""

__all__ = [
    "errors",
    "config",
    "normalize",
    "models",
    "ingest",
    "jmdict",
    "search",
    "detect_duplicates",
    "store",
    "manga",
    "service",
    "report",
    "cli",
]
