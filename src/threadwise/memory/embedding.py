"""Embedding backends and vector similarity."""

import hashlib
import math
import re
from typing import Protocol, Sequence

import httpx

from ..errors import NotReady

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class Embedder(Protocol):
    """Capability that maps text to an embedding vector."""

    async def embed(self, text: str) -> list[float]:
        """Embed text. Raises NotReady if the backend is unavailable."""
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, 0.0 if either is all zeros.

    Raises:
        ValueError: If the vectors have different dimensions.
    """
    if len(a) != len(b):
        raise ValueError(f"Dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class HashingEmbedder:
    """Local, deterministic bag-of-words embedder using feature hashing.

    Needs no network and no model download. Texts sharing words get
    similar vectors, which is enough for retrieving older summaries in a
    single conversation.
    """

    def __init__(self, dimensions: int = 256) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be at least 1")
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        return vector


class HttpEmbedder:
    """Embedder backed by an OpenAI-compatible /embeddings endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = base_url.rstrip("/") + "/embeddings"
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, text: str) -> list[float]:
        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {"model": self._model, "input": text}

        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotReady(f"Embedding backend unavailable: {e}") from e

        try:
            vector = response.json()["data"][0]["embedding"]
            return [float(x) for x in vector]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise NotReady(f"Malformed embedding response: {e}") from e
