import math

import pytest

from agents.research_agent import ResearchAgent
from retrieval_core.models import Segment
from retrieval_core.store import StoreMode, VectorStore
from web_ingest.config import RetrievalSettings

VOCABULARY = ("bitcoin", "inflation", "earnings", "oil", "rates")


class KeywordEmbedder:
    """Deterministic embedder: one dimension per vocabulary word plus a bias."""

    def __init__(self):
        self.calls = []

    def embed(self, texts):
        self.calls.append(list(texts))
        vectors = []
        for text in texts:
            lower = text.lower()
            vectors.append([float(lower.count(word)) for word in VOCABULARY] + [0.1])
        return vectors


def unit_vector(score):
    """2-D unit vector whose dot product with [1, 0] equals `score`."""
    return [score, math.sqrt(1.0 - score * score)]


def make_segment(url, content, index=0):
    return Segment(source_url=url, content=content, sequence_index=index)


@pytest.fixture()
def embedder():
    return KeywordEmbedder()


@pytest.fixture()
def settings(tmp_path):
    return RetrievalSettings(
        data_dir=tmp_path,
        persist_store=True,
        hosted_stateless=False,
        chunk_size=120,
        chunk_overlap=20,
    )


@pytest.fixture()
def pages():
    return {
        "https://news.example.com/crypto": (
            "Bitcoin rallied on Monday. Traders pointed to bitcoin ETF inflows. "
            "Analysts expect more volatility this week."
        ),
        "https://news.example.com/macro": (
            "Inflation cooled in March. The central bank kept rates unchanged. "
            "Oil prices slipped after the report."
        ),
    }


@pytest.fixture()
def make_agent(settings, embedder, pages):
    def _make(mode=StoreMode.PERSISTENT, generate=None, fetch=None):
        store = VectorStore(settings.store_path, mode=mode, lock_timeout=1.0)
        return ResearchAgent(
            settings=settings,
            store=store,
            embedder=embedder,
            fetch=fetch or pages.__getitem__,
            generate=generate or (lambda messages: "Stub answer."),
        )

    return _make
