"""
Chunked reads from local files and HTTP(S) resources.

Both backends answer the same question: given a source and a list of spans,
how big is the source, and what bytes sit in those spans? The span maths and
size validation live in ChunkReader; a backend only knows how to report the
total size and read `size` bytes at an absolute offset.
"""
import os
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Union

import requests
from urllib3.exceptions import HTTPError, IncompleteRead, ProtocolError, ReadTimeoutError

from errors import (
    MalformedResponseError,
    NetworkError,
    OpenError,
    RangeUnsupportedError,
    ShortReadError,
    SourceTooSmallError,
    StatError,
)
from models import ChunkData, Span

DEFAULT_TIMEOUT = 10.0  # seconds, shared by every request of one fetch
READ_BLOCK = 16384

REMOTE_PREFIXES = ("http://", "https://")

Source = Union[str, "os.PathLike[str]"]


def is_remote(source: Source) -> bool:
    """Return True if source is an http:// or https:// URL."""
    return isinstance(source, str) and source.lower().startswith(REMOTE_PREFIXES)


class ChunkReader(ABC):
    """Backend-agnostic span fetching. Use as a context manager."""

    def __init__(self, source: Source) -> None:
        self.source = source
        self._total_size: Optional[int] = None

    @abstractmethod
    def _probe_size(self) -> int:
        """Determine the total size of the source in bytes."""

    @abstractmethod
    def read_at(self, offset: int, size: int) -> bytes:
        """Return exactly `size` bytes starting at absolute `offset`."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "ChunkReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def total_size(self) -> int:
        if self._total_size is None:
            self._total_size = self._probe_size()
        return self._total_size

    def fetch_spans(self, minimum_size: int, spans: Sequence[Span]) -> ChunkData:
        """
        Validate the source against minimum_size and read every span, in
        order, into one contiguous buffer.
        """
        total = self.total_size()
        if total < minimum_size:
            raise SourceTooSmallError(
                f"{self.source} is too small to generate a valid hash",
                {"size": total, "minimum": minimum_size},
            )

        starts: List[int] = []
        for span in spans:
            start = span.resolve(total)
            if start < 0 or start + span.size > total:
                raise SourceTooSmallError(
                    f"{self.source} is too small for span {span.offset}+{span.size}",
                    {"size": total},
                )
            starts.append(start)

        buf = bytearray(sum(span.size for span in spans))
        filled = 0
        for span, start in zip(spans, starts):
            buf[filled:filled + span.size] = self.read_at(start, span.size)
            filled += span.size

        return ChunkData(total_size=total, buffer=bytes(buf))


class LocalChunkReader(ChunkReader):
    """Seek-and-read access to a file on disk."""

    def __init__(self, source: Source) -> None:
        super().__init__(source)
        try:
            self._file = open(os.fspath(source), "rb")
        except OSError as e:
            raise OpenError(f"Cannot open {source} for hashing: {e}") from e

    def _probe_size(self) -> int:
        try:
            return os.fstat(self._file.fileno()).st_size
        except OSError as e:
            raise StatError(f"Cannot stat {self.source} for hashing: {e}") from e

    def read_at(self, offset: int, size: int) -> bytes:
        try:
            self._file.seek(offset)
            data = self._file.read(size)
        except OSError as e:
            raise ShortReadError(f"Cannot read {self.source} at {offset}: {e}") from e
        if len(data) != size:
            raise ShortReadError(
                f"Invalid read from {self.source}: got {len(data)} of {size} bytes",
                {"offset": offset},
            )
        return data

    def close(self) -> None:
        self._file.close()


class RemoteChunkReader(ChunkReader):
    """
    HTTP range-request access to a URL.

    One session and one deadline per reader: the HEAD probe and every ranged
    GET together must finish within `timeout` seconds.
    """

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(url)
        self.url = url
        self._deadline = time.monotonic() + timeout
        self._session = requests.Session()
        self._session.headers["Accept-Encoding"] = "identity"

    def _remaining(self) -> float:
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise NetworkError(f"Timed out fetching {self.url}")
        return remaining

    def _probe_size(self) -> int:
        try:
            res = self._session.head(
                self.url, timeout=self._remaining(), allow_redirects=True
            )
            res.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"Cannot reach {self.url}: {e}") from e

        accept_ranges = res.headers.get("Accept-Ranges", "")
        units = {unit.strip().lower() for unit in accept_ranges.split(",")}
        if "bytes" not in units:
            raise RangeUnsupportedError(
                f"{self.url} doesn't support range fetch",
                {"accept_ranges": accept_ranges or None},
            )

        length = res.headers.get("Content-Length")
        try:
            size = int(length)
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"{self.url} sent no usable Content-Length", {"content_length": length}
            ) from e
        if size < 0:
            raise MalformedResponseError(
                f"{self.url} sent a negative Content-Length", {"content_length": length}
            )
        return size

    def read_at(self, offset: int, size: int) -> bytes:
        range_header = f"bytes={offset}-{offset + size - 1}"
        try:
            with self._session.get(
                self.url,
                headers={"Range": range_header},
                timeout=self._remaining(),
                stream=True,
            ) as res:
                res.raise_for_status()
                self._check_range_response(res, offset, size)
                data = self._read_body(res, size, range_header)
        except requests.RequestException as e:
            raise NetworkError(f"Cannot fetch {range_header} of {self.url}: {e}") from e

        if len(data) < size:
            raise ShortReadError(
                f"Invalid read from {self.url}: got {len(data)} of {size} bytes",
                {"range": range_header},
            )
        return bytes(data[:size])

    def _read_body(self, res: requests.Response, size: int, range_header: str) -> bytearray:
        """
        Read up to `size` bytes of the body. read1 returns as soon as any
        bytes arrive, so the deadline is checked after every socket read.
        """
        data = bytearray()
        try:
            while len(data) < size:
                self._remaining()
                piece = res.raw.read1(min(READ_BLOCK, size - len(data)))
                if not piece:
                    break
                data += piece
        except ReadTimeoutError as e:
            raise NetworkError(f"Timed out fetching {range_header} of {self.url}") from e
        except (IncompleteRead, ProtocolError) as e:
            raise ShortReadError(
                f"Invalid read from {self.url}: got {len(data)} of {size} bytes, "
                f"connection ended early",
                {"range": range_header},
            ) from e
        except HTTPError as e:
            raise NetworkError(f"Cannot fetch {range_header} of {self.url}: {e}") from e
        return data

    def _check_range_response(self, res: requests.Response, offset: int, size: int) -> None:
        total = self.total_size()
        whole = offset == 0 and size == total
        if res.status_code != 206 and not (res.status_code == 200 and whole):
            raise RangeUnsupportedError(
                f"{self.url} ignored the Range header", {"status": res.status_code}
            )

        content_range = res.headers.get("Content-Range")
        if content_range is None:
            return
        declared = content_range.rpartition("/")[2].strip()
        if declared not in ("*", str(total)):
            raise MalformedResponseError(
                f"{self.url} changed size between requests",
                {"expected": total, "content_range": content_range},
            )

    def close(self) -> None:
        self._session.close()


def reader_for(source: Source, timeout: float = DEFAULT_TIMEOUT) -> ChunkReader:
    """Pick the backend for source by its prefix."""
    if is_remote(source):
        return RemoteChunkReader(source, timeout=timeout)
    return LocalChunkReader(source)


def fetch_spans(
    source: Source,
    minimum_size: int,
    spans: Sequence[Span],
    timeout: float = DEFAULT_TIMEOUT,
) -> ChunkData:
    """Return the total size of source and the bytes of spans, concatenated."""
    with reader_for(source, timeout=timeout) as reader:
        return reader.fetch_spans(minimum_size, spans)
