"""Test doubles for the index, the embedder, the chat model and the tools."""

from .index import DuplicateIdError, HashEmbedder, InMemoryIndexStore
from .mock_llm import FakeToolCallingChatModel, ai_response, create_mock_llm, malformed_tool_call, tool_call
from .mock_tools import create_mock_tools

__all__ = [
    "DuplicateIdError",
    "HashEmbedder",
    "InMemoryIndexStore",
    "FakeToolCallingChatModel",
    "ai_response",
    "create_mock_llm",
    "malformed_tool_call",
    "tool_call",
    "create_mock_tools",
]
