from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence

from retrieval_core.chunking import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, build_segments
from retrieval_core.embeddings import Embedder, embed_texts
from retrieval_core.models import Segment, Store

_log = logging.getLogger(__name__)

TextProvider = Callable[[str], str]


def build_segments_from_urls(
    urls: Sequence[str],
    fetch: TextProvider,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    max_workers: int = 5,
) -> List[Segment]:
    """
    Fetch and chunk every URL concurrently.

    Segments come back grouped by URL in the order the URLs were given, and in
    chunk order within a URL, whatever order the fetches finish in. Any fetch
    failure aborts the whole batch.
    """
    valid_urls = [url for url in urls if url]
    if not valid_urls:
        return []

    def _fetch_and_chunk(url: str) -> List[Segment]:
        text = fetch(url)
        return build_segments(url, text, max_length=chunk_size, overlap_length=chunk_overlap)

    workers = max(1, min(max_workers, len(valid_urls)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fetch") as pool:
        # map() yields in submission order and re-raises the first failure.
        per_url = list(pool.map(_fetch_and_chunk, valid_urls))

    segments = [segment for url_segments in per_url for segment in url_segments]
    _log.info("Built %d segments from %d URLs", len(segments), len(valid_urls))
    return segments


def embed_segments(
    segments: Sequence[Segment],
    embedder: Embedder,
    timeout: float | None = None,
) -> Store:
    """Embed segment contents and pair them positionally into a Store."""
    vectors = embed_texts(embedder, [s.content for s in segments], timeout=timeout)
    return Store(documents=list(segments), vectors=vectors)


__all__ = ["build_segments_from_urls", "embed_segments", "TextProvider"]
