"""Workspace indexing, semantic retrieval and a tool-calling chat loop."""

__version__ = "0.1.0"
