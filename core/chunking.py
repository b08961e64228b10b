# core/chunking.py
"""Deterministic word-window chunking (pure, no I/O)"""
from typing import List

from core.exceptions import InvalidArgumentError

DEFAULT_CHUNK_SIZE = 800
DEFAULT_CHUNK_OVERLAP = 200


def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP) -> List[str]:
    """
    Split text into overlapping windows of `chunk_size` whitespace-delimited words.

    Consecutive windows share `overlap` words. The step is clamped to at least
    one word, so an overlap >= chunk_size still makes progress. The last window
    holds whatever words remain and ends the loop.

    Example:
        chunk_text("a b c d e", chunk_size=3, overlap=1)
        -> ["a b c", "c d e"]
    """
    if chunk_size < 1:
        raise InvalidArgumentError(
            "chunk_size must be >= 1", {"chunk_size": chunk_size}
        )

    words = text.split() if text else []
    step = max(chunk_size - max(overlap, 0), 1)

    chunks: List[str] = []
    start = 0
    while start < len(words):
        end = min(start + chunk_size, len(words))
        chunks.append(" ".join(words[start:end]))
        if end == len(words):
            break
        start += step

    return chunks
