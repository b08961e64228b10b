# core/domain.py
"""Domain models shared across the retrieval pipeline."""
from dataclasses import dataclass, field
from typing import List, Optional

CHUNK_ID_SEPARATOR = "-"


def make_chunk_id(patent_id: str, sequence_index: int) -> str:
    """Deterministic chunk id: '{patent_id}-{sequence_index}'."""
    return f"{patent_id}{CHUNK_ID_SEPARATOR}{sequence_index}"


def chunk_sequence_label(chunk_id: str) -> str:
    """Token after the last '-' of a chunk id (the chunk's position in its document)."""
    return chunk_id.rsplit(CHUNK_ID_SEPARATOR, 1)[-1]


# ============= Domain Models =============

@dataclass
class Chunk:
    """Atomic retrievable unit: a word window of one patent document"""
    patent_id: str
    chunk_id: str
    text: str
    embedding: Optional[List[float]] = None  # None until backfilled


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit; distance 0 = most similar"""
    patent_id: str
    chunk_id: str
    snippet: str
    distance: float


@dataclass(frozen=True)
class Citation:
    """Maps a bracketed marker [index] back to the chunk it cites"""
    index: int
    patent_id: str
    chunk_id: str
    sequence_label: str

    @property
    def label(self) -> str:
        return f"{self.patent_id}{CHUNK_ID_SEPARATOR}{self.sequence_label}"


@dataclass
class QueryAnswer:
    """Synthesized answer; citations[i] is marker [i + 1]"""
    answer: str
    citations: List[Citation] = field(default_factory=list)


@dataclass(frozen=True)
class IngestionResult:
    patent_id: str
    chunk_count: int
    characters: int


@dataclass(frozen=True)
class BackfillItemResult:
    """Outcome of embedding a single chunk during a backfill pass"""
    chunk_id: str
    success: bool
    attempts: int = 1
    skipped: bool = False  # embedding was already set by another pass
    error: Optional[str] = None


@dataclass
class BackfillReport:
    """Aggregate of one backfill pass"""
    total: int = 0
    results: List[BackfillItemResult] = field(default_factory=list)

    @property
    def embedded(self) -> int:
        return sum(1 for r in self.results if r.success and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failures(self) -> List[BackfillItemResult]:
        return [r for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return not self.failures
