"""Semantic search over the index, exposed as a model tool.

``perform_rag_search`` can be called directly; ``make_rag_search_tool``
wraps it for the tool-calling loop.
"""

from langchain_core.tools import BaseTool, tool

from ..logging_config import get_logger
from ..rag.retriever import Retriever, format_docs

logger = get_logger(__name__)


def perform_rag_search(retriever: Retriever, query: str, n_results: int = 5, max_chars: int = 16000) -> str:
    """Run a search and format the hits for the model.

    Args:
        retriever: Retriever bound to the current index
        query: Natural language description of what to find
        n_results: Maximum number of results to return
        max_chars: Output budget

    Returns:
        Formatted string with file labels, line numbers and chunk text
    """
    docs = retriever.search(query, k=n_results)
    if not docs:
        return f"No relevant code found for query: {query}"
    return format_docs(docs, max_chars=max_chars)


def make_rag_search_tool(retriever: Retriever) -> BaseTool:
    @tool
    def rag_search(query: str, n_results: int = 5) -> str:
        """Search the indexed workspace and repositories using semantic search.

        Use this to find code related to a concept when the provided context
        is not enough.

        Args:
            query: Natural language description of what to find (e.g., "config loading", "retry logic")
            n_results: Maximum number of results to return

        Returns:
            Formatted string with file paths, line numbers and matching code
        """
        logger.debug("rag_search %r (n=%s)", query, n_results)
        return perform_rag_search(retriever, query, n_results=n_results)

    return rag_search
