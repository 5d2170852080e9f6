"""
Embedding Service

Text -> vector embeddings for the semantic matcher.

Backends:
    http   — OpenAI-compatible POST {url}/embeddings (Ollama, llama-server)
    local  — sentence-transformers model loaded in-process

Every call runs in a worker thread and is bounded by embeddings.timeout, so
a slow backend never blocks other sessions on the event loop.
"""

import asyncio
import logging
import threading
from collections import OrderedDict
from typing import List

import requests

logger = logging.getLogger("valet.embeddings")

_CACHE_EVICT_COUNT = 100


class EmbeddingUnavailable(Exception):
    """The embedding backend could not produce a vector."""


class EmbeddingService:
    """Embeds text with a bounded LRU-style cache."""

    def __init__(self, config):
        self.config = config
        self.backend = config.get("embeddings.backend", "http")
        self.url = config.get("embeddings.url", "").rstrip("/")
        self.model = config.get("embeddings.model")
        self.local_model_name = config.get("embeddings.local_model", "all-MiniLM-L6-v2")
        self.timeout = float(config.get("embeddings.timeout", 10.0))
        self.cache_size = int(config.get("embeddings.cache_size", 1000))

        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self._cache_lock = threading.Lock()
        self._local_model = None
        self._available = False

    async def initialize(self) -> None:
        """Probe the backend once; failure only marks the service unavailable."""
        try:
            await self.embed("test")
            self._available = True
            logger.info(f"EmbeddingService initialized (backend={self.backend})")
        except EmbeddingUnavailable as e:
            logger.warning(f"EmbeddingService: embeddings unavailable: {e}")
            self._available = False

    def is_available(self) -> bool:
        return self._available

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single string

        Raises:
            EmbeddingUnavailable: backend error or timeout
        """
        with self._cache_lock:
            cached = self._cache.get(text)
            if cached is not None:
                self._cache.move_to_end(text)
                return cached

        try:
            embedding = await asyncio.wait_for(
                asyncio.to_thread(self._embed_sync, text),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailable(f"timed out after {self.timeout}s") from e
        except EmbeddingUnavailable:
            raise
        except Exception as e:
            raise EmbeddingUnavailable(str(e)) from e

        self._remember(text, embedding)
        return embedding

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return list(await asyncio.gather(*(self.embed(t) for t in texts)))

    def _remember(self, text: str, embedding: List[float]):
        with self._cache_lock:
            self._cache[text] = embedding
            if len(self._cache) > self.cache_size:
                for _ in range(min(_CACHE_EVICT_COUNT, len(self._cache))):
                    self._cache.popitem(last=False)

    def _embed_sync(self, text: str) -> List[float]:
        if self.backend == "local":
            return self._embed_local(text)
        return self._embed_http(text)

    def _embed_http(self, text: str) -> List[float]:
        response = requests.post(
            f"{self.url}/embeddings",
            json={"model": self.model, "input": text},
            timeout=self.timeout,
        )
        if not response.ok:
            raise EmbeddingUnavailable(f"Embedding failed: {response.status_code}")
        data = response.json()
        return list(data["data"][0]["embedding"])

    def _embed_local(self, text: str) -> List[float]:
        if self._local_model is None:
            from sentence_transformers import SentenceTransformer
            logger.info(f"Loading local embedding model: {self.local_model_name}")
            self._local_model = SentenceTransformer(self.local_model_name)
        vector = self._local_model.encode(text, show_progress_bar=False)
        return vector.tolist()

    def cached_count(self) -> int:
        with self._cache_lock:
            return len(self._cache)

    def close(self) -> None:
        with self._cache_lock:
            self._cache.clear()
