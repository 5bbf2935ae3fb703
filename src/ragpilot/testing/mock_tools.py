"""Mock tools for testing the loop without filesystem or index side effects."""

from typing import Any

from langchain_core.tools import BaseTool, tool


def _respond(responses: dict[str, Any], name: str, key: str, default: str) -> str:
    responses.setdefault("calls", []).append({"tool": name, "key": key})
    tool_resp = responses.get(name)
    if isinstance(tool_resp, Exception):
        raise tool_resp
    if callable(tool_resp):
        return tool_resp(key)
    if isinstance(tool_resp, dict):
        return tool_resp.get(key, default)
    return tool_resp or default


def create_mock_tools(responses: dict[str, Any] | None = None) -> list[BaseTool]:
    """Create mock versions of the built-in tools.

    Args:
        responses: Maps tool names to a string, a dict keyed by the tool's
            main argument, a callable taking that argument, or an
            Exception instance the tool raises. Every call is appended to
            ``responses["calls"]``.

    Example:
        >>> tools = create_mock_tools({
        ...     "rag_search": "--- 1. src/config.py:1 ---\\nDEFAULTS = {}",
        ...     "read_file_lines": OSError("disk on fire"),
        ... })
    """
    responses = responses if responses is not None else {}

    @tool
    def rag_search(query: str, n_results: int = 5) -> str:
        """Mock rag_search that returns predefined semantic search results."""
        return _respond(responses, "rag_search", query, f"No relevant code found for query: {query}")

    @tool
    def read_file_lines(path: str, start_line: int = 1, end_line: int | None = None, max_lines: int = 100) -> str:
        """Mock read_file_lines that returns predefined content."""
        return _respond(responses, "read_file_lines", path, f"# Mock content for {path}")

    @tool
    def list_directory(path: str = ".", max_depth: int = 2, max_items: int = 50) -> str:
        """Mock list_directory that returns a predefined listing."""
        return _respond(responses, "list_directory", path, "Directory is empty.")

    @tool
    def find_files_by_name(pattern: str, max_results: int = 20) -> str:
        """Mock find_files_by_name that returns predefined matches."""
        return _respond(responses, "find_files_by_name", pattern, f"No files matching pattern: {pattern}")

    return [rag_search, read_file_lines, list_directory, find_files_by_name]
