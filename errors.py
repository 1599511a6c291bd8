"""
Exception hierarchy for OSDB hashing.

Every failure the chunk readers or the hash folder can hit has its own class,
so callers can tell a missing file from a server that refuses range requests
without parsing messages. All of them derive from HashError.
"""
from typing import Optional


class HashError(Exception):
    """Base class for all hashing failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ── Local source ──────────────────────────────────────────────────────────────

class OpenError(HashError):
    """The local file could not be opened."""


class StatError(HashError):
    """The local file was opened but its metadata could not be read."""


# ── Remote source ─────────────────────────────────────────────────────────────

class NetworkError(HashError):
    """Transport failure, timeout or HTTP error status talking to a remote source."""


class RangeUnsupportedError(HashError):
    """The remote source does not serve byte ranges."""


class MalformedResponseError(HashError):
    """The remote source reported a missing or inconsistent size."""


# ── Either backend ────────────────────────────────────────────────────────────

class SourceTooSmallError(HashError):
    """The source is too small for the requested spans."""


class ShortReadError(HashError):
    """Fewer bytes came back than a span asked for."""


# ── Folding ───────────────────────────────────────────────────────────────────

class DecodeError(HashError):
    """The buffer cannot be split into 64-bit words."""
