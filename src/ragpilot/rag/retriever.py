"""Top-k semantic retrieval over the index."""

from ..logging_config import get_logger
from .embeddings import EmbeddingProvider
from .indexer import IndexManager
from .models import RetrievedDoc

logger = get_logger(__name__)

DEFAULT_TOP_K = 5


class Retriever:
    """Embeds a query once and returns the k most similar chunks."""

    def __init__(self, index_manager: IndexManager, embedder: EmbeddingProvider, default_k: int = DEFAULT_TOP_K):
        self.index_manager = index_manager
        self.embedder = embedder
        self.default_k = default_k

    def search(self, query: str, k: int | None = None) -> list[RetrievedDoc]:
        """Retrieve relevant chunks using semantic search.

        Args:
            query: Natural language query
            k: Maximum number of results (defaults to ``default_k``)

        Returns:
            At most k RetrievedDoc objects, highest score first. Empty when
            the index is absent or empty.
        """
        k = self.default_k if k is None else k
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        if not self.index_manager.has_index():
            logger.debug("Search skipped: no index")
            return []

        vector = self.embedder.embed(query)
        hits = self.index_manager.query(vector, k)

        docs = [
            RetrievedDoc(text=item.metadata.text, metadata=item.metadata, score=score)
            for item, score in hits
        ]
        docs.sort(key=lambda d: d.score, reverse=True)
        logger.debug("Search %r returned %s docs", query[:80], len(docs))
        return docs[:k]


def format_docs(docs: list[RetrievedDoc], max_chars: int = 16000) -> str:
    """Format retrieved docs for tool output.

    Args:
        docs: Retrieved docs, best first
        max_chars: Approximate output budget

    Returns:
        Formatted string with one labeled section per doc
    """
    if not docs:
        return "No relevant context found."

    lines = [f"Found {len(docs)} relevant sections:\n"]
    total_chars = 0

    for i, doc in enumerate(docs, 1):
        header = f"\n--- {i}. {doc.label}:{doc.metadata.line} (score: {doc.score:.3f}) ---"
        if total_chars + len(header) + len(doc.text) > max_chars:
            lines.append(f"\n... ({len(docs) - i + 1} more sections truncated)")
            break
        lines.append(header)
        lines.append(doc.text)
        total_chars += len(header) + len(doc.text)

    return "\n".join(lines)
