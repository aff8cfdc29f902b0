from __future__ import annotations

import logging
import re
from typing import List

from .models import Segment

_log = logging.getLogger(__name__)

# Character-based limits. Web articles are short enough that counting
# characters keeps chunks comfortably inside the embedding model's window.
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# Sentence ends (punctuation stays with its sentence), paragraph breaks,
# single newlines and comma-delimited clauses.
UNIT_DELIMITERS = re.compile(r"(?<=[.!?])\s+|\n{2,}|\n|,\s+")


def _split_into_units(text: str) -> List[str]:
    """Split text into natural units, dropping empty or whitespace-only pieces."""
    normalized = text.replace("\r\n", "\n")
    return [unit for unit in UNIT_DELIMITERS.split(normalized) if unit and unit.strip()]


def chunk_text(
    text: str,
    max_length: int = DEFAULT_CHUNK_SIZE,
    overlap_length: int = DEFAULT_CHUNK_OVERLAP,
) -> List[str]:
    """
    Greedily pack natural text units into overlapping chunks.

    Units are joined with single spaces while the buffer stays within
    `max_length`. When the next unit would overflow, the buffer is emitted and
    the next one is seeded with its trailing `overlap_length` characters.
    A single unit longer than `max_length` is kept whole, so such chunks can
    exceed the limit.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    if overlap_length < 0 or overlap_length >= max_length:
        raise ValueError(
            f"overlap_length must be in [0, {max_length}), got {overlap_length}"
        )

    chunks: list[str] = []
    buffer = ""

    for unit in _split_into_units(text):
        candidate = unit if not buffer else f"{buffer} {unit}"
        if len(candidate) <= max_length:
            buffer = candidate
            continue

        finished = buffer.strip()
        if finished:
            chunks.append(finished)

        overlap = buffer[max(0, len(buffer) - overlap_length) :] if overlap_length else ""
        buffer = f"{overlap} {unit}" if overlap else unit

    tail = buffer.strip()
    if tail:
        chunks.append(tail)

    return chunks


def build_segments(
    source_url: str,
    text: str,
    max_length: int = DEFAULT_CHUNK_SIZE,
    overlap_length: int = DEFAULT_CHUNK_OVERLAP,
) -> List[Segment]:
    """Chunk one source's text into Segments numbered in chunk order."""
    pieces = chunk_text(text, max_length=max_length, overlap_length=overlap_length)
    segments = [
        Segment(source_url=source_url, content=content, sequence_index=index)
        for index, content in enumerate(pieces)
    ]
    _log.info("Chunked %s into %d segments", source_url, len(segments))
    return segments


__all__ = [
    "chunk_text",
    "build_segments",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_OVERLAP",
]
