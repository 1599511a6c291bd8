"""
hasher.py — OSDB (OpenSubtitles) file hash.

The hash is the sum of the first and last 64 KB of the file, read as
little-endian unsigned 64-bit words, plus the file size, all modulo 2**64.
Only 128 KB are ever read, so it is cheap even for remote multi-gigabyte
videos.
"""
import os
import struct
from typing import Union

from chunk_reader import DEFAULT_TIMEOUT, fetch_spans
from errors import DecodeError
from models import HashResult, Span

CHUNK_SIZE = 65536  # 64 KB
MINIMUM_SIZE = 2 * CHUNK_SIZE

WORD = struct.Struct("<Q")
MASK_64 = 0xFFFFFFFFFFFFFFFF

OSDB_SPANS = (
    Span(offset=0, size=CHUNK_SIZE),
    Span(offset=-CHUNK_SIZE, size=CHUNK_SIZE),
)


def compute_identity_hash(buffer: bytes, total_size: int) -> str:
    """Fold buffer and total_size into a 16-digit lowercase hex string."""
    if len(buffer) % WORD.size:
        raise DecodeError(
            f"Buffer of {len(buffer)} bytes is not a whole number of 64-bit words"
        )
    total = sum(word for (word,) in WORD.iter_unpack(buffer))
    return f"{(total + total_size) & MASK_64:016x}"


def hash_source(
    source: Union[str, "os.PathLike[str]"],
    timeout: float = DEFAULT_TIMEOUT,
) -> HashResult:
    """Hash a local path or http(s) URL and return hash plus size."""
    chunks = fetch_spans(source, MINIMUM_SIZE, OSDB_SPANS, timeout=timeout)
    return HashResult(
        source=os.fspath(source),
        hash=compute_identity_hash(chunks.buffer, chunks.total_size),
        size=chunks.total_size,
    )


def osdb_hash_file(
    source: Union[str, "os.PathLike[str]"],
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Return the OSDB hash of a local path or http(s) URL."""
    return hash_source(source, timeout=timeout).hash
