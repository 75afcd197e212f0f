"""Ollama embedding adapter."""
import os
from typing import List, Optional

import httpx

from core.errors import BackendCallFailed

from ._http import DEFAULT_TIMEOUT, ClientHolder, post_json
from .cache import EmbeddingCache

DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_DIMENSIONS = 768
PROBE_TIMEOUT = 5.0


class OllamaEmbeddingAdapter:
    """Turns text into vectors through Ollama's ``/api/embeddings``.

    Batches are embedded one text at a time. When a cache is given, vectors
    are looked up before and stored after each call.
    """

    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        host: Optional[str] = None,
        dimensions: int = DEFAULT_DIMENSIONS,
        timeout: float = DEFAULT_TIMEOUT,
        cache: Optional[EmbeddingCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.host = (host or os.environ.get("OLLAMA_HOST", "http://localhost:11434")).rstrip("/")
        self._dimensions = dimensions
        self._timeout = timeout
        self._cache = cache
        self._http = ClientHolder(timeout, client)

    @property
    def name(self) -> str:
        return self.model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> List[float]:
        if self._cache is not None:
            cached = await self._cache.get(self.model, text)
            if cached is not None:
                return cached

        data = await post_json(
            self._http.get(), self.name, f"{self.host}/api/embeddings",
            {"model": self.model, "prompt": text}, timeout=self._timeout,
        )
        vector = data.get("embedding")
        if not isinstance(vector, list) or not vector:
            raise BackendCallFailed(self.name, "empty embedding")
        vector = [float(v) for v in vector]

        if self._cache is not None:
            await self._cache.set(self.model, text, vector)
        return vector

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        vectors = []
        for text in texts:
            vectors.append(await self.embed(text))
        return vectors

    async def is_available(self) -> bool:
        try:
            response = await self._http.get().get(f"{self.host}/api/tags", timeout=PROBE_TIMEOUT)
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._http.aclose()
