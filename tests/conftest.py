"""
Shared fixtures for the osdbhash test suite.
"""
import re
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

CHUNK = 65536


# ── File-creation helpers ─────────────────────────────────────────────────────

def make_file(path: Path, content: bytes = b"dummy content") -> Path:
    """Create a file with the given content; create parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def patterned_bytes(size: int) -> bytes:
    """Deterministic non-repeating-ish content so head and tail differ."""
    return bytes((i * 31 + (i >> 8)) & 0xFF for i in range(size))


# ── Range-capable HTTP server ─────────────────────────────────────────────────

class RangeServerState:
    """What the test server serves and how it misbehaves."""

    def __init__(self) -> None:
        self.content = b""
        self.accept_ranges = "bytes"
        self.content_length = None      # override HEAD Content-Length (str)
        self.ignore_range = False       # answer GET with 200 + full body
        self.short_by = 0               # drop this many bytes from GET bodies
        self.truncate_by = 0            # promise the full body, send this many bytes less
        self.drip = 0.0                 # seconds between single body bytes
        self.content_range_total = None  # override total in Content-Range
        self.delay = 0.0                # sleep before every response
        self.requests = []              # (method, Range header) log


_RANGE_RE = re.compile(r"bytes=(\d+)-(\d+)")


def _make_handler(state: RangeServerState):
    class Handler(BaseHTTPRequestHandler):
        def log_message(self, format, *args):
            pass

        def _common_headers(self) -> None:
            if state.accept_ranges is not None:
                self.send_header("Accept-Ranges", state.accept_ranges)

        def do_HEAD(self):
            state.requests.append(("HEAD", None))
            time.sleep(state.delay)
            self.send_response(200)
            self._common_headers()
            length = state.content_length
            if length is None:
                length = str(len(state.content))
            if length != "":
                self.send_header("Content-Length", length)
            self.end_headers()

        def do_GET(self):
            range_header = self.headers.get("Range")
            state.requests.append(("GET", range_header))
            time.sleep(state.delay)
            match = _RANGE_RE.fullmatch(range_header or "")
            if state.ignore_range or match is None:
                body = state.content
                self.send_response(200)
            else:
                start, end = int(match.group(1)), int(match.group(2))
                body = state.content[start:end + 1]
                self.send_response(206)
                total = state.content_range_total
                if total is None:
                    total = len(state.content)
                self.send_header("Content-Range", f"bytes {start}-{end}/{total}")
            if state.short_by:
                body = body[:-state.short_by]
            self._common_headers()
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if state.truncate_by:
                body = body[:-state.truncate_by]
            try:
                self._write_body(body)
            except (BrokenPipeError, ConnectionResetError):
                pass

        def _write_body(self, body: bytes) -> None:
            if not state.drip:
                self.wfile.write(body)
                return
            for i in range(len(body)):
                self.wfile.write(body[i:i + 1])
                self.wfile.flush()
                time.sleep(state.drip)

    return Handler


@pytest.fixture
def range_server():
    """
    Start a local HTTP server on a free port. Yields (base_url, state);
    set state.content and the misbehaviour flags before requesting.
    """
    state = RangeServerState()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(state))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield f"http://{host}:{port}/video.mkv", state
    finally:
        server.shutdown()
        server.server_close()


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def src(tmp_path: Path) -> Path:
    """Empty source directory."""
    d = tmp_path / "source"
    d.mkdir()
    return d


@pytest.fixture
def zero_file(tmp_path: Path) -> Path:
    """All-zero file of exactly two chunks."""
    return make_file(tmp_path / "zeros.mkv", bytes(2 * CHUNK))
