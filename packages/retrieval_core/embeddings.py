from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import List, Protocol, Sequence

import numpy as np

from .errors import DimensionMismatchError, ProviderError
from .similarity import l2_normalize

_log = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "BAAI/bge-m3"

# Single worker: the model is never asked to encode two batches at once.
_EMBED_EXECUTOR = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embed")


class Embedder(Protocol):
    """Maps texts to fixed-length vectors, one per input, in order."""

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        ...


def _get_device() -> str:
    """Return device string, prefer GPU when available."""
    import torch

    if torch.cuda.is_available():
        return "cuda"
    return "cpu"


class BgeM3Embedder:
    """Dense BGE-M3 embeddings via FlagEmbedding, loaded lazily on first use."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL_NAME,
        batch_size: int = 16,
        max_length: int = 8192,
    ) -> None:
        self.model_name = model_name
        self.batch_size = batch_size
        self.max_length = max_length
        self._model = None

    @property
    def model(self):
        if self._model is None:
            # Heavy imports are deferred so that importing this module stays cheap.
            from FlagEmbedding import BGEM3FlagModel

            device = _get_device()
            use_fp16 = device == "cuda"
            _log.info(
                "Loading BGEM3FlagModel '%s' on device=%s (fp16=%s)",
                self.model_name,
                device,
                use_fp16,
            )
            self._model = BGEM3FlagModel(self.model_name, use_fp16=use_fp16, device=device)
        return self._model

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        _log.info(
            "Encoding %d texts with %s (batch_size=%d, max_length=%d)",
            len(texts),
            self.model_name,
            self.batch_size,
            self.max_length,
        )
        outputs = self.model.encode(
            list(texts),
            batch_size=self.batch_size,
            max_length=self.max_length,
            return_dense=True,
            return_sparse=False,
            return_colbert_vecs=False,
        )
        dense = np.asarray(outputs["dense_vecs"], dtype=np.float32)
        return dense.tolist()


def embed_texts(embedder: Embedder, texts: Sequence[str], timeout: float | None = None) -> List[List[float]]:
    """
    Embed `texts` and L2-normalise the result.

    The provider call is bounded by `timeout` seconds. Any provider failure,
    including a timeout, is raised as ProviderError; a batch with mixed vector
    lengths raises DimensionMismatchError.

    Calls are serialised on one worker thread, so a timed-out encode keeps the
    model to itself until it finishes and later calls queue behind it.
    """
    if not texts:
        return []

    future = _EMBED_EXECUTOR.submit(embedder.embed, list(texts))
    try:
        raw = future.result(timeout=timeout)
    except FutureTimeoutError as exc:
        future.cancel()
        raise ProviderError(f"Embedding {len(texts)} texts timed out after {timeout}s") from exc
    except Exception as exc:  # noqa: BLE001
        raise ProviderError(f"Embedding provider failed: {exc}") from exc

    if len(raw) != len(texts):
        raise ProviderError(f"Embedding provider returned {len(raw)} vectors for {len(texts)} texts")

    dims = {len(vec) for vec in raw}
    if len(dims) > 1:
        raise DimensionMismatchError(f"Embedding provider returned mixed dimensions: {sorted(dims)}")

    return [l2_normalize(vec) for vec in raw]


__all__ = ["Embedder", "BgeM3Embedder", "embed_texts", "DEFAULT_MODEL_NAME"]
