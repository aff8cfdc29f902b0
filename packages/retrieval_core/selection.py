"""
Context selection over a Store.

Scoped selection (explicit source URLs) guarantees that every requested source
contributes its best-matching segment before the remaining slots are filled
from the global ranking. Unscoped selection is a plain global top-k.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from .models import ScoredSegment, Store
from .similarity import top_k

_log = logging.getLogger(__name__)

CONTEXT_LIMIT = 6
GLOBAL_CANDIDATES = 10
UNSCOPED_TOP_K = 5


def _best_per_source(
    source_urls: Sequence[str],
    store: Store,
    scores: Dict[int, float],
) -> List[int]:
    """Index of the highest-scoring segment for each URL, in URL order."""
    by_url: Dict[str, List[int]] = {}
    for idx, segment in enumerate(store.documents):
        by_url.setdefault(segment.source_url, []).append(idx)

    picked: list[int] = []
    for url in source_urls:
        indices = by_url.get(url)
        if not indices:
            _log.info("No segments for requested source %s, skipping", url)
            continue
        best = indices[0]
        for idx in indices[1:]:
            if scores[idx] > scores[best]:
                best = idx
        if best not in picked:
            picked.append(best)
    return picked


def select_scoped(
    query_vector: Sequence[float],
    store: Store,
    source_urls: Sequence[str],
    limit: int = CONTEXT_LIMIT,
    candidates: int = GLOBAL_CANDIDATES,
) -> List[ScoredSegment]:
    """Coverage-first selection over a freshly built corpus."""
    if store.is_empty:
        return []

    ranking = top_k(query_vector, store.vectors, len(store.vectors))
    scores = {item.index: item.score for item in ranking}

    selected = _best_per_source(source_urls, store, scores)
    coverage_count = len(selected)
    seen_ids = {store.documents[idx].id for idx in selected}

    for item in ranking[: min(candidates, len(ranking))]:
        if len(selected) >= limit:
            break
        segment_id = store.documents[item.index].id
        if segment_id in seen_ids:
            continue
        selected.append(item.index)
        seen_ids.add(segment_id)

    _log.info(
        "Selected %d segments (%d for source coverage, %d from global ranking)",
        len(selected),
        coverage_count,
        len(selected) - coverage_count,
    )
    results = [ScoredSegment(segment=store.documents[idx], score=scores[idx]) for idx in selected]
    results.sort(key=lambda r: r.score, reverse=True)
    return results


def select_unscoped(
    query_vector: Sequence[float],
    store: Store,
    k: int = UNSCOPED_TOP_K,
) -> List[ScoredSegment]:
    """Global top-k over the durable store; an empty store yields no context."""
    if store.is_empty:
        return []
    ranking = top_k(query_vector, store.vectors, k)
    return [ScoredSegment(segment=store.documents[r.index], score=r.score) for r in ranking]


def select_context(
    query_vector: Sequence[float],
    store: Store,
    source_urls: Sequence[str] = (),
) -> List[ScoredSegment]:
    """Dispatch to scoped or unscoped selection depending on `source_urls`."""
    if source_urls:
        return select_scoped(query_vector, store, source_urls)
    return select_unscoped(query_vector, store)


__all__ = [
    "select_context",
    "select_scoped",
    "select_unscoped",
    "CONTEXT_LIMIT",
    "GLOBAL_CANDIDATES",
    "UNSCOPED_TOP_K",
]
