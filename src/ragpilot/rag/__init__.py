"""Chunking, vector index maintenance and semantic retrieval."""

from .chunker import Chunk, chunk_text
from .embeddings import EmbeddingProvider, SentenceTransformerEmbedder
from .indexer import IndexManager
from .models import ChunkMetadata, IndexedItem, IngestStats, RetrievedDoc, SourceDocument, SourceKind
from .registry import ENTIRE_WORKSPACE, IndexedSourceRegistry
from .retriever import Retriever, format_docs
from .vectorstore import ChromaIndexStore, IndexStore

__all__ = [
    "Chunk",
    "chunk_text",
    "EmbeddingProvider",
    "SentenceTransformerEmbedder",
    "IndexManager",
    "ChunkMetadata",
    "IndexedItem",
    "IngestStats",
    "RetrievedDoc",
    "SourceDocument",
    "SourceKind",
    "ENTIRE_WORKSPACE",
    "IndexedSourceRegistry",
    "Retriever",
    "format_docs",
    "ChromaIndexStore",
    "IndexStore",
]
