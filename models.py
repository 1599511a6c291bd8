from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class Span:
    offset: int              # negative = relative to end of source
    size: int

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError(f"Span size must be positive, got {self.size}")

    def resolve(self, total_size: int) -> int:
        """Return the absolute start offset for a source of total_size bytes."""
        if self.offset < 0:
            return total_size + self.offset
        return self.offset


@dataclass
class ChunkData:
    total_size: int
    buffer: bytes


@dataclass
class HashResult:
    source: str
    hash: str                # 16 lowercase hex digits
    size: int

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "hash": self.hash,
            "size": self.size,
        }


@dataclass
class HashSummary:
    sources_given: int = 0
    files_hashed: int = 0
    files_errored: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def files_seen(self) -> int:
        return self.files_hashed + self.files_errored
