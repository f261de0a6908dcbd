"""
Embedding provider clients.

Turns text into fixed-length dense vectors, at ingestion time for the corpus
and at query time for semantic search.

Backends:
    openai: hosted embeddings endpoint (default, text-embedding-3-large)
    local:  sentence-transformers model loaded in-process
"""
import logging
import math
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from .errors import EmbeddingProviderError

logger = logging.getLogger(__name__)


def _l2_normalize(vec: List[float]) -> List[float]:
    """L2 normalize a vector to unit length."""
    s = math.sqrt(sum((x * x) for x in vec)) or 1.0
    return [x / s for x in vec]


def _assert_dim(vec: List[float], expected: int, where: str) -> None:
    """Validate vector dimension matches the configured EMBED_DIM."""
    if len(vec) != expected:
        raise EmbeddingProviderError(
            f"[embeddings] {where} returned dim={len(vec)} but EMBED_DIM={expected}. "
            f"Please fix the embedder or set EMBED_DIM to match."
        )


class EmbeddingProvider(ABC):
    """Abstract embedding provider."""

    @abstractmethod
    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a list of texts.

        Args:
            texts: Input texts

        Returns:
            One vector per input text, in the same order
        """
        pass

    def embed_query(self, text: str) -> List[float]:
        """Embed a single query string."""
        vectors = self.embed([text])
        if not vectors:
            raise EmbeddingProviderError("Embedding provider returned no vector for query")
        return vectors[0]


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Hosted embeddings over HTTP, batched by EMBED_BATCH_SIZE."""

    def __init__(self, settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def _build_payload(self, batch: List[str]) -> dict:
        payload = {
            "model": self.settings.EMBED_MODEL,
            "input": batch,
            "encoding_format": "float",
        }
        # text-embedding-3 models can be shortened to the index dimension
        if self.settings.EMBED_MODEL.startswith("text-embedding-3"):
            payload["dimensions"] = self.settings.EMBED_DIM
        return payload

    def _embed_batch(self, batch: List[str]) -> List[List[float]]:
        headers = {
            "Authorization": f"Bearer {self.settings.OPENAI_API_KEY or ''}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(
                self.settings.OPENAI_EMBEDDINGS_URL,
                headers=headers,
                json=self._build_payload(batch),
                timeout=self.settings.EMBED_TIMEOUT_S,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Embeddings request failed: {e}")
            raise EmbeddingProviderError(f"Embeddings request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingProviderError(f"Embeddings response is not JSON: {e}") from e

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list) or len(items) != len(batch):
            raise EmbeddingProviderError(
                f"Embeddings response has {len(items) if isinstance(items, list) else 'no'} "
                f"vectors for {len(batch)} inputs"
            )

        if not all(isinstance(item, dict) for item in items):
            raise EmbeddingProviderError("Embeddings response item is not an object")

        # The API tags each vector with its input position
        items = sorted(items, key=lambda d: d.get("index", 0))
        vectors = []
        for item in items:
            vec = item.get("embedding")
            if not isinstance(vec, list):
                raise EmbeddingProviderError("Embeddings response item has no vector")
            vec = [float(x) for x in vec]
            _assert_dim(vec, self.settings.EMBED_DIM, "openai")
            vectors.append(vec)
        return vectors

    def embed(self, texts: List[str]) -> List[List[float]]:
        batch_size = self.settings.EMBED_BATCH_SIZE
        results: List[List[float]] = []
        for i in range(0, len(texts), batch_size):
            batch = texts[i:i + batch_size]
            logger.debug(f"Embedding batch {i // batch_size + 1} ({len(batch)} texts)")
            results.extend(self._embed_batch(batch))
        return results


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    In-process sentence-transformers embedder.

    The model is loaded lazily on first use and shared across threads.
    """

    def __init__(self, settings):
        self.settings = settings
        self._model = None
        self._lock = threading.Lock()

    def _load_model(self):
        if self._model is not None:
            return self._model

        with self._lock:
            if self._model is not None:
                return self._model
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise EmbeddingProviderError(
                    "[embeddings] sentence-transformers not installed. "
                    "Install with: pip install 'tweet-search[local]'"
                ) from e

            logger.info(f"Loading embedding model: {self.settings.LOCAL_EMBED_MODEL}")
            try:
                self._model = SentenceTransformer(self.settings.LOCAL_EMBED_MODEL)
            except Exception as e:
                raise EmbeddingProviderError(
                    f"[embeddings] Failed to load model {self.settings.LOCAL_EMBED_MODEL}: {e}"
                ) from e
            return self._model

    def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        model = self._load_model()
        try:
            matrix = model.encode(
                texts,
                batch_size=min(len(texts), 64),
                normalize_embeddings=True,
                show_progress_bar=False,
            )
        except Exception as e:
            raise EmbeddingProviderError(f"Local embedding failed: {e}") from e

        vectors = []
        for row in matrix:
            vec = _l2_normalize([float(x) for x in row])
            _assert_dim(vec, self.settings.EMBED_DIM, "local")
            vectors.append(vec)
        return vectors


def get_embedding_provider(settings) -> EmbeddingProvider:
    """
    Factory function to get the configured embedding provider.

    Args:
        settings: Configuration settings

    Returns:
        EmbeddingProvider instance
    """
    backend = (settings.EMBED_BACKEND or "openai").lower()
    if backend == "openai":
        return OpenAIEmbeddingProvider(settings)
    if backend == "local":
        return LocalEmbeddingProvider(settings)
    raise ValueError(f"Unknown EMBED_BACKEND={settings.EMBED_BACKEND}. Valid options: openai, local")
