from pathlib import Path
from typing import Generator, Iterable

from chunk_reader import is_remote


VIDEO_EXTENSIONS = {
    ".mp4", ".mov", ".avi", ".mkv", ".m4v", ".wmv", ".mpg", ".mpeg",
    ".flv", ".webm", ".mts", ".m2ts", ".ts", ".3gp", ".ogv", ".divx",
}


def is_video(file_path: Path) -> bool:
    """Return True if the extension marks file_path as a video."""
    return file_path.suffix.lower() in VIDEO_EXTENSIONS


def _is_hidden(path: Path) -> bool:
    """Return True if any component of the path starts with a dot."""
    return any(part.startswith(".") for part in path.parts)


def scan_directory(
    source_path: Path,
    all_files: bool = False,
) -> Generator[Path, None, None]:
    """
    Walk source_path recursively in sorted order, yielding each video file
    (or every regular file when all_files is set). Skips hidden paths,
    symlinks and zero-byte files.
    """
    for file_path in sorted(source_path.rglob("*")):
        rel = file_path.relative_to(source_path)

        if _is_hidden(rel):
            continue
        if file_path.is_symlink() or not file_path.is_file():
            continue
        if not all_files and not is_video(file_path):
            continue

        try:
            if file_path.stat().st_size == 0:
                continue
        except PermissionError:
            continue

        yield file_path


def expand_sources(
    sources: Iterable[str],
    all_files: bool = False,
) -> Generator[str, None, None]:
    """
    Yield hashable sources: URLs and file paths pass through unchanged,
    directories are replaced by the files scan_directory finds in them.
    Paths that don't exist pass through so the hasher reports them.
    """
    for source in sources:
        if is_remote(source):
            yield source
            continue
        path = Path(source).expanduser()
        if path.is_dir():
            for file_path in scan_directory(path, all_files=all_files):
                yield str(file_path)
        else:
            yield str(path)
