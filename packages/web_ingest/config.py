from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from retrieval_core.store import StoreMode


class RetrievalSettings(BaseSettings):
    """Configuration for ingestion, storage and retrieval."""

    model_config = SettingsConfigDict(
        env_prefix="NEWSRAG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_root: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parents[2],
        description="Repository root directory.",
    )

    data_dir: Path = Field(
        default_factory=lambda: Path("data"),
        description="Directory holding the persisted vector store.",
    )
    store_file: str = Field(default="vectorstore.json", description="Vector store file name.")
    persist_store: bool = Field(
        default=True,
        description="Write the store to disk. False selects ephemeral mode.",
    )
    hosted_stateless: bool = Field(
        default_factory=lambda: os.getenv("VERCEL") == "1",
        description="Set on stateless hosting, where the filesystem does not outlive a request.",
    )

    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    max_urls: int = Field(default=5, gt=0, description="Maximum URLs per request.")

    fetch_timeout_seconds: float = Field(default=15.0, gt=0)
    fetch_concurrency: int = Field(default=5, gt=0)
    user_agent: str = Field(default="Mozilla/5.0")

    embed_model_name: str = Field(default="BAAI/bge-m3")
    embed_batch_size: int = Field(default=16, gt=0)
    embed_max_length: int = Field(default=8192, gt=0)
    embed_timeout_seconds: float = Field(default=120.0, gt=0)

    store_lock_timeout_seconds: float = Field(default=10.0, gt=0)

    @property
    def store_mode(self) -> StoreMode:
        if not self.persist_store or self.hosted_stateless:
            return StoreMode.EPHEMERAL
        return StoreMode.PERSISTENT

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_file

    def resolve_paths(self) -> "RetrievalSettings":
        """Return a copy with relative paths resolved against project_root."""
        data_dir = self.data_dir
        if not data_dir.is_absolute():
            data_dir = self.project_root / data_dir
        return self.model_copy(update={"data_dir": data_dir})


def get_settings() -> RetrievalSettings:
    """Return settings with resolved paths."""
    return RetrievalSettings().resolve_paths()


__all__ = ["RetrievalSettings", "get_settings"]
