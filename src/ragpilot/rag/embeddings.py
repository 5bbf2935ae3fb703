"""Embedding provider backed by a local sentence-transformers model."""

from typing import Optional, Protocol

from sentence_transformers import SentenceTransformer

from ..errors import NotInitializedError
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EMBEDDING_MODEL = "BAAI/bge-base-en-v1.5"


class EmbeddingProvider(Protocol):
    """Maps text to a fixed-dimension vector."""

    def embed(self, text: str) -> list[float]: ...


class SentenceTransformerEmbedder:
    """Unit-normalized embeddings from a SentenceTransformer model.

    The model is loaded on first use. Switching ``model_name`` invalidates
    every stored vector; clear the index and re-ingest after changing it.
    """

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL):
        self.model_name = model_name
        self._model: Optional[SentenceTransformer] = None

    def _get_model(self) -> SentenceTransformer:
        if self._model is None:
            logger.info("Loading embedding model %s (first time only)...", self.model_name)
            try:
                self._model = SentenceTransformer(self.model_name)
            except Exception as e:
                raise NotInitializedError(
                    f"Could not load embedding model {self.model_name}: {e}"
                ) from e
        return self._model

    def embed(self, text: str) -> list[float]:
        return self.embed_many([text])[0]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors (each is a list of floats)
        """
        model = self._get_model()
        embeddings = model.encode(
            texts,
            normalize_embeddings=True,
            show_progress_bar=len(texts) > 50,
        )
        return embeddings.tolist()
