import math
import threading
import time

import pytest

from retrieval_core.embeddings import embed_texts
from retrieval_core.errors import DimensionMismatchError, FetchError, ProviderError
from web_ingest.pipeline import build_segments_from_urls, embed_segments


def test_segments_follow_url_order_not_completion_order():
    delays = {"https://slow.example/a": 0.2, "https://fast.example/b": 0.0}
    texts = {
        "https://slow.example/a": "Slow one. Slow two.",
        "https://fast.example/b": "Fast one. Fast two.",
    }

    def fetch(url):
        time.sleep(delays[url])
        return texts[url]

    segments = build_segments_from_urls(
        ["https://slow.example/a", "https://fast.example/b"],
        fetch,
        chunk_size=10,
        chunk_overlap=0,
    )

    assert [(s.source_url, s.sequence_index, s.content) for s in segments] == [
        ("https://slow.example/a", 0, "Slow one."),
        ("https://slow.example/a", 1, "Slow two."),
        ("https://fast.example/b", 0, "Fast one."),
        ("https://fast.example/b", 1, "Fast two."),
    ]


def test_any_fetch_failure_aborts_batch():
    def fetch(url):
        if "bad" in url:
            raise FetchError(f"Failed to fetch URL: {url}")
        return "Fine text."

    with pytest.raises(FetchError):
        build_segments_from_urls(["https://good.example/", "https://bad.example/"], fetch)


def test_blank_urls_are_ignored():
    calls = []

    def fetch(url):
        calls.append(url)
        return "Text."

    assert build_segments_from_urls(["", ""], fetch) == []
    assert calls == []


def test_embed_segments_pairs_unit_vectors(embedder):
    segments = build_segments_from_urls(
        ["https://a.example/"], lambda url: "Bitcoin up. Oil down.", chunk_size=12, chunk_overlap=0
    )

    store = embed_segments(segments, embedder)

    assert len(store.documents) == len(store.vectors) == 2
    for vec in store.vectors:
        assert math.sqrt(sum(v * v for v in vec)) == pytest.approx(1.0)


def test_embed_texts_empty_input_skips_provider(embedder):
    assert embed_texts(embedder, []) == []
    assert embedder.calls == []


def test_embed_texts_timeout_raises_provider_error():
    class SlowEmbedder:
        def embed(self, texts):
            time.sleep(0.5)
            return [[1.0] for _ in texts]

    with pytest.raises(ProviderError):
        embed_texts(SlowEmbedder(), ["hello"], timeout=0.05)


def test_embed_texts_wraps_provider_failures():
    class BrokenEmbedder:
        def embed(self, texts):
            raise RuntimeError("model unavailable")

    with pytest.raises(ProviderError, match="model unavailable"):
        embed_texts(BrokenEmbedder(), ["hello"])


def test_embed_texts_rejects_mixed_dimensions():
    class DriftingEmbedder:
        def embed(self, texts):
            return [[1.0, 0.0], [1.0, 0.0, 0.0]]

    with pytest.raises(DimensionMismatchError):
        embed_texts(DriftingEmbedder(), ["a", "b"])


def test_embed_calls_never_overlap_after_a_timeout():
    class TrackingEmbedder:
        def __init__(self):
            self.lock = threading.Lock()
            self.active = 0
            self.max_active = 0

        def embed(self, texts):
            with self.lock:
                self.active += 1
                self.max_active = max(self.max_active, self.active)
            time.sleep(0.3)
            with self.lock:
                self.active -= 1
            return [[1.0, 0.0] for _ in texts]

    embedder = TrackingEmbedder()

    with pytest.raises(ProviderError):
        embed_texts(embedder, ["first"], timeout=0.05)
    vectors = embed_texts(embedder, ["second"], timeout=5.0)

    assert vectors[0] == pytest.approx([1.0, 0.0])
    assert embedder.max_active == 1
