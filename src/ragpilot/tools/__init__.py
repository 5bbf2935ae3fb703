"""Tools offered to the chat model."""

from pathlib import Path

from langchain_core.tools import BaseTool

from ..rag.retriever import Retriever
from .rag import make_rag_search_tool, perform_rag_search
from .workspace import make_workspace_tools


def builtin_tools(workspace_root: str | Path, retriever: Retriever | None = None) -> list[BaseTool]:
    """Workspace file tools, plus rag_search when a retriever is given."""
    tools = make_workspace_tools(workspace_root)
    if retriever is not None:
        tools.insert(0, make_rag_search_tool(retriever))
    return tools


__all__ = [
    "builtin_tools",
    "make_rag_search_tool",
    "make_workspace_tools",
    "perform_rag_search",
]
