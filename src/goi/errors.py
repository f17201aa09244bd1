"""Error taxonomy for the vocabulary core.

Loader errors are recovered close to where they happen (degrade to an
empty or previous data set); fetch and write failures propagate to the
caller as user-visible messages.
"""

from __future__ import annotations


class GoiError(Exception):
    """Base class for all errors raised by this package."""


class MalformedResourceError(GoiError):
    """Bundled core lexicon is unreadable or a record lacks a required field."""


class NetworkError(GoiError):
    """Large lexicon download failed. Retry by calling fetch again."""


class StorageWriteError(GoiError):
    """A payload or the user collection could not be written to disk."""


class ParseError(GoiError):
    """Downloaded dictionary payload is structurally invalid."""


class DecodingError(GoiError):
    """Persisted user collection could not be deserialized."""


class ConfigError(GoiError):
    """Configuration file exists but cannot be read."""


class FetchInProgressError(GoiError):
    """A large lexicon download is already running."""
