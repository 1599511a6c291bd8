#!/usr/bin/env python3
"""
osdbhash: Compute OSDB (OpenSubtitles) hashes for local video files and
http(s) URLs that support range requests.

Prints one JSON object per source on stdout.

Usage:
    python osdbhash.py movie.mkv https://example.com/episode.mp4 ~/Videos
"""

import argparse
import json
import sys
from typing import List, Optional, TextIO

from tqdm import tqdm

from chunk_reader import DEFAULT_TIMEOUT
from errors import HashError
from hasher import hash_source
from models import HashSummary
from scanner import expand_sources


# ── Output helpers ────────────────────────────────────────────────────────────

def _emit(payload: dict, out: TextIO) -> None:
    out.write(json.dumps(payload, ensure_ascii=False) + "\n")
    out.flush()


def error_payload(source: str, error: Exception) -> dict:
    """Structured error report for a source that could not be hashed."""
    return {
        "source": source,
        "error": True,
        "kind": type(error).__name__,
        "message": str(error),
    }


# ── Core pipeline ─────────────────────────────────────────────────────────────

def process_sources(
    sources: List[str],
    timeout: float,
    all_files: bool,
    verbose: bool,
    use_progress: bool,
    out: Optional[TextIO] = None,
) -> HashSummary:
    """Hash every source (directories expanded) and write one JSON line each."""
    out = out or sys.stdout
    summary = HashSummary(sources_given=len(sources))
    targets = list(expand_sources(sources, all_files=all_files))

    with tqdm(
        total=len(targets),
        unit="file",
        desc="hashing",
        ncols=80,
        disable=not use_progress or len(targets) < 2,
    ) as bar:
        for target in targets:
            try:
                result = hash_source(target, timeout=timeout)
            except HashError as e:
                summary.files_errored += 1
                summary.errors.append((target, str(e)))
                _emit(error_payload(target, e), out)
                if verbose:
                    print(f"  ERROR {target}: {e}", file=sys.stderr)
            else:
                summary.files_hashed += 1
                _emit(result.to_dict(), out)
                if verbose:
                    print(f"  HASH  {target}  →  {result.hash}", file=sys.stderr)
            bar.update(1)
            bar.set_postfix(hashed=summary.files_hashed, errors=summary.files_errored)

    return summary


def print_summary(summary: HashSummary, file: Optional[TextIO] = None) -> None:
    file = file or sys.stderr
    print("\n" + "=" * 44, file=file)
    print("  OSDB Hash Summary", file=file)
    print("=" * 44, file=file)
    print(f"  Sources : {summary.sources_given:>6,}", file=file)
    print(f"  Files   : {summary.files_seen:>6,}", file=file)
    print(f"  Hashed  : {summary.files_hashed:>6,}", file=file)
    print(f"  Errors  : {summary.files_errored:>6,}", file=file)
    if summary.errors:
        show = summary.errors[:20]
        for source, msg in show:
            print(f"    ! {source}: {msg}", file=file)
        if len(summary.errors) > 20:
            print(f"    ... and {len(summary.errors) - 20} more errors", file=file)
    print(file=file)


# ── CLI ───────────────────────────────────────────────────────────────────────

def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osdbhash",
        description=(
            "Compute the OSDB hash (first and last 64 KB plus size) of video "
            "files or http(s) URLs. Directories are searched recursively for "
            "video files. One JSON object per source is printed on stdout."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  osdbhash movie.mkv\n"
            "  osdbhash https://example.com/episode.mp4 --timeout 30\n"
            "  osdbhash ~/Videos --verbose\n"
        ),
    )
    parser.add_argument(
        "sources",
        nargs="+",
        metavar="SOURCE",
        help="Files, directories, or http(s) URLs to hash.",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=DEFAULT_TIMEOUT,
        metavar="SECONDS",
        help=f"Deadline for all requests to one URL (default: {DEFAULT_TIMEOUT:g}).",
    )
    parser.add_argument(
        "--all-files",
        action="store_true",
        help="When scanning directories, hash every file, not only videos.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print each source's outcome and a summary on stderr.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    summary = process_sources(
        sources=args.sources,
        timeout=args.timeout,
        all_files=args.all_files,
        verbose=args.verbose,
        use_progress=not args.no_progress,
    )

    if args.verbose:
        print_summary(summary)

    return 1 if summary.files_errored else 0


if __name__ == "__main__":
    sys.exit(main())
