"""
Query embedding client for semantic search.

Calls an OpenAI-compatible ``/embeddings`` endpoint.  Input text is
Arabic-normalized first and the returned vector is L2-normalized so that
cosine distance in the database matches the stored document vectors.
"""

from __future__ import annotations

import hashlib
import logging
import math

import httpx

from quran_agent.errors import EmbeddingError
from quran_agent.text import normalize_arabic

logger = logging.getLogger(__name__)


def l2_normalize(vector: list[float]) -> list[float]:
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        return list(vector)
    return [v / norm for v in vector]


class EmbeddingClient:
    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        api_key: str = "",
        model: str = "text-embedding-3-large",
        dimensions: int = 3072,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self.model = model
        self.dimensions = dimensions
        self._timeout = timeout
        self._transport = transport

    async def embed(self, text: str) -> list[float]:
        cleaned = normalize_arabic(text)
        if not cleaned:
            raise EmbeddingError("cannot embed empty text")

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        body = {"model": self.model, "input": cleaned, "dimensions": self.dimensions}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(f"{self._url}/embeddings", json=body, headers=headers)
        except httpx.TransportError as exc:
            raise EmbeddingError(f"embedding request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise EmbeddingError(
                f"embedding API error: HTTP {resp.status_code}", status_code=resp.status_code
            )
        try:
            vector = resp.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EmbeddingError(f"malformed embedding response: {exc}") from exc

        if len(vector) != self.dimensions:
            logger.warning(
                "Embedding has %d dimensions, expected %d", len(vector), self.dimensions
            )
        return l2_normalize([float(v) for v in vector])


class HashingEmbedder:
    """
    Offline bag-of-words embedder for demos and tests.

    Each normalized token is hashed into one of *dimensions* buckets, so
    texts sharing words get a positive cosine similarity.  It has the same
    ``embed`` coroutine as ``EmbeddingClient``.
    """

    def __init__(self, dimensions: int = 256) -> None:
        self.dimensions = dimensions
        self.model = "hashing"

    def vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dimensions
        for token in normalize_arabic(text).split():
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vec[int.from_bytes(digest[:4], "big") % self.dimensions] += 1.0
        return l2_normalize(vec)

    async def embed(self, text: str) -> list[float]:
        if not normalize_arabic(text):
            raise EmbeddingError("cannot embed empty text")
        return self.vector(text)
