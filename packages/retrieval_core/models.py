from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def new_segment_id() -> str:
    return uuid.uuid4().hex


class Segment(BaseModel):
    """A bounded piece of one source document's text."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_segment_id, description="Opaque unique identifier.")
    source_url: str = Field(..., description="URL the text was fetched from.")
    content: str = Field(..., min_length=1, description="Chunk text used for embeddings and generation.")
    sequence_index: int = Field(
        ...,
        ge=0,
        description="Position of the chunk within its own source.",
    )


class Store(BaseModel):
    """Parallel sequences of segments and their unit-length vectors."""

    documents: List[Segment] = Field(default_factory=list)
    vectors: List[List[float]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_alignment(self) -> "Store":
        if len(self.documents) != len(self.vectors):
            raise ValueError(
                f"documents ({len(self.documents)}) and vectors ({len(self.vectors)}) must align"
            )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.vectors

    @property
    def dimension(self) -> Optional[int]:
        if not self.vectors:
            return None
        return len(self.vectors[0])


class ScoredIndex(BaseModel):
    """Position in a vector collection plus its similarity to a query."""

    index: int
    score: float


class ScoredSegment(BaseModel):
    """Segment scored against one query vector. Never persisted."""

    segment: Segment
    score: float


__all__ = ["Segment", "Store", "ScoredIndex", "ScoredSegment", "new_segment_id"]
