from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from apps.backend.llm.groq_client import ask_groq, build_messages, strip_sources_section
from retrieval_core.embeddings import BgeM3Embedder, Embedder, embed_texts
from retrieval_core.errors import EphemeralModeError
from retrieval_core.models import ScoredSegment, Store
from retrieval_core.selection import select_scoped, select_unscoped
from retrieval_core.store import VectorStore
from web_ingest.config import RetrievalSettings, get_settings
from web_ingest.fetcher import fetch_url_text
from web_ingest.pipeline import TextProvider, build_segments_from_urls, embed_segments

_log = logging.getLogger(__name__)

AnswerGenerator = Callable[[List[Dict[str, str]]], str]


class ResearchAnswer(BaseModel):
    """Answer text plus the distinct source URLs its context came from."""

    answer: str
    sources: List[str] = Field(default_factory=list)


def unique_sources(contexts: Sequence[ScoredSegment]) -> List[str]:
    """Source URLs in context order, each listed once."""
    return list(dict.fromkeys(ctx.segment.source_url for ctx in contexts))


@dataclass
class ResearchAgent:
    """Orchestrates ingestion, context selection and answer generation."""

    settings: RetrievalSettings
    store: VectorStore
    embedder: Embedder
    fetch: TextProvider
    generate: AnswerGenerator = ask_groq

    @classmethod
    def from_settings(cls, settings: Optional[RetrievalSettings] = None) -> "ResearchAgent":
        settings = settings or get_settings()
        store = VectorStore(
            settings.store_path,
            mode=settings.store_mode,
            lock_timeout=settings.store_lock_timeout_seconds,
        )
        embedder = BgeM3Embedder(
            model_name=settings.embed_model_name,
            batch_size=settings.embed_batch_size,
            max_length=settings.embed_max_length,
        )
        fetch = partial(
            fetch_url_text,
            timeout=settings.fetch_timeout_seconds,
            user_agent=settings.user_agent,
        )
        _log.info("Research agent using %s store at %s", settings.store_mode.value, settings.store_path)
        return cls(settings=settings, store=store, embedder=embedder, fetch=fetch)

    def _build_corpus(self, urls: Sequence[str]) -> Store:
        segments = build_segments_from_urls(
            urls,
            self.fetch,
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
            max_workers=self.settings.fetch_concurrency,
        )
        return embed_segments(segments, self.embedder, timeout=self.settings.embed_timeout_seconds)

    def _embed_query(self, question: str) -> List[float]:
        [vector] = embed_texts(self.embedder, [question], timeout=self.settings.embed_timeout_seconds)
        return vector

    def ingest(self, urls: Sequence[str], replace: bool = False) -> int:
        """Fetch, chunk and embed `urls`, then append to or replace the store."""
        corpus = self._build_corpus(urls)
        if replace:
            self.store.replace(corpus)
        else:
            self.store.append(corpus.documents, corpus.vectors)
        _log.info("Ingested %d segments from %d URLs (replace=%s)", len(corpus.documents), len(urls), replace)
        return len(corpus.documents)

    def build_context(self, question: str, urls: Sequence[str] = ()) -> List[ScoredSegment]:
        """
        Select context segments for `question`.

        With URLs the fresh corpus from exactly those URLs replaces the store and
        every URL is guaranteed a segment. Without URLs the durable store is
        searched globally.
        """
        if urls:
            corpus = self.store.replace(self._build_corpus(urls))
            if corpus.is_empty:
                return []
            return select_scoped(self._embed_query(question), corpus, urls)

        if self.store.is_ephemeral:
            raise EphemeralModeError(
                "Please provide at least one URL. In production mode, URLs are required for context."
            )
        store = self.store.load()
        if store.is_empty:
            _log.info("Vector store is empty, answering without context")
            return []
        return select_unscoped(self._embed_query(question), store)

    def ask(self, question: str, urls: Sequence[str] = ()) -> ResearchAnswer:
        """Answer `question` grounded in the selected context."""
        contexts = self.build_context(question, urls)
        messages = build_messages(question, contexts)
        answer = strip_sources_section(self.generate(messages))
        return ResearchAnswer(answer=answer, sources=unique_sources(contexts))


__all__ = ["ResearchAgent", "ResearchAnswer", "unique_sources"]
