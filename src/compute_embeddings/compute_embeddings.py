"""Batch embedding generation through the OpenAI embeddings endpoint."""

import logging
import time
from collections.abc import Callable
from typing import Any

from openai import OpenAI

from common.config import EmbeddingConfig
from common.llm import PROVIDER
from common.utils import get_value
from quality_gate.quality_gate import clean_text
from resilience.circuit_breaker import CircuitBreaker
from resilience.errors import CircuitOpenError, MalformedResponseError, ProviderUnavailableError
from resilience.guard import guarded_call
from resilience.key_manager import KeyManager

logger = logging.getLogger(__name__)


def build_text_to_embed(article: Any, max_description_chars: int = 1000) -> str:
    """Build ``"title: description"`` with the description truncated."""
    title = get_value(article, "title") or ""
    description = clean_text(get_value(article, "description"))[:max_description_chars]
    if not description:
        return title
    return f"{title}: {description}"


class BatchEmbeddingGenerator:
    """Embeds texts in provider-sized chunks, tolerating partial failures.

    Results keep the input order. A failed chunk, or an item the provider
    left out of its response, leaves ``None`` in its slot so callers can
    fall back to ``embed_one`` for just those texts.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        breaker: CircuitBreaker,
        config: EmbeddingConfig | None = None,
        client_factory: Callable[[str], OpenAI] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.key_manager = key_manager
        self.breaker = breaker
        self.config = config or EmbeddingConfig()
        self._client_factory = client_factory or (lambda key: OpenAI(api_key=key))
        self._clients: dict[str, OpenAI] = {}
        self._sleep = sleep

    def _client(self, key: str) -> OpenAI:
        if key not in self._clients:
            self._clients[key] = self._client_factory(key)
        return self._clients[key]

    def _embed_chunk(self, texts: list[str], key: str) -> list[list[float] | None]:
        response = self._client(key).embeddings.create(model=self.config.model, input=texts)
        vectors: list[list[float] | None] = [None] * len(texts)
        for item in response.data:
            if 0 <= item.index < len(texts):
                vectors[item.index] = list(item.embedding)
        return vectors

    def embed_batch(self, texts: list[str]) -> list[list[float] | None]:
        results: list[list[float] | None] = [None] * len(texts)
        if not texts:
            return results

        size = self.config.batch_size
        chunk_starts = list(range(0, len(texts), size))
        for chunk_no, start in enumerate(chunk_starts):
            if chunk_no and self.config.chunk_delay_seconds:
                self._sleep(self.config.chunk_delay_seconds)

            chunk = texts[start:start + size]
            try:
                vectors = guarded_call(
                    self.key_manager,
                    self.breaker,
                    PROVIDER,
                    lambda key: self._embed_chunk(chunk, key),
                )
            except CircuitOpenError:
                logger.warning(
                    "Embedding circuit open, skipping %d remaining chunks",
                    len(chunk_starts) - chunk_no,
                )
                break
            except ProviderUnavailableError as e:
                logger.error("Embedding chunk %d failed: %s", chunk_no + 1, e)
                continue

            results[start:start + len(chunk)] = vectors

        embedded = sum(1 for vector in results if vector is not None)
        logger.info("Embedded %d of %d texts", embedded, len(texts))
        return results

    def embed_one(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            ProviderUnavailableError: The provider could not be used.
            MalformedResponseError: The response held no vector.
        """
        vectors = guarded_call(
            self.key_manager,
            self.breaker,
            PROVIDER,
            lambda key: self._embed_chunk([text], key),
        )
        if vectors[0] is None:
            raise MalformedResponseError("Embedding response contained no vector")
        return vectors[0]
