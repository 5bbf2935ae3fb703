"""Index store primitive implemented on a persistent ChromaDB collection."""

import uuid
from pathlib import Path
from typing import Protocol

import chromadb
from chromadb.config import Settings

from ..logging_config import get_logger
from .models import ChunkMetadata, IndexedItem

logger = get_logger(__name__)

DEFAULT_COLLECTION = "rag_chunks"


class IndexStore(Protocol):
    """Persistent collection of (vector, metadata) items."""

    def create_index(self) -> None: ...
    def is_index_created(self) -> bool: ...
    def begin_update(self) -> None: ...
    def end_update(self) -> None: ...
    def insert_item(self, vector: list[float], metadata: ChunkMetadata) -> str: ...
    def list_items(self) -> list[IndexedItem]: ...
    def delete_index(self) -> None: ...
    def query_items(self, vector: list[float], k: int) -> list[tuple[IndexedItem, float]]: ...


class ChromaIndexStore:
    """IndexStore on a cosine-space ChromaDB collection.

    Ids are generated here on every insert; callers never supply them.
    ``begin_update``/``end_update`` bracket a mutation session and refuse
    to nest. Inserts are written through immediately, so items added
    before an aborted session stay committed.
    """

    def __init__(self, persist_dir: str | Path, collection_name: str = DEFAULT_COLLECTION):
        self.persist_dir = Path(persist_dir)
        self.collection_name = collection_name
        self._client = None
        self._collection = None
        self._updating = False

    @property
    def client(self):
        if self._client is None:
            self.persist_dir.mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(
                path=str(self.persist_dir),
                settings=Settings(
                    anonymized_telemetry=False,
                    allow_reset=True,
                ),
            )
        return self._client

    def _collection_names(self) -> list[str]:
        # chromadb < 0.6 returns Collection objects, newer versions return names
        return [c if isinstance(c, str) else c.name for c in self.client.list_collections()]

    def _get_collection(self):
        if self._collection is None:
            if not self.is_index_created():
                raise RuntimeError(f"Index {self.collection_name} has not been created")
            self._collection = self.client.get_collection(self.collection_name)
        return self._collection

    def create_index(self) -> None:
        self._collection = self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )

    def is_index_created(self) -> bool:
        return self.collection_name in self._collection_names()

    def begin_update(self) -> None:
        if self._updating:
            raise RuntimeError("An index update is already in progress")
        self._updating = True

    def end_update(self) -> None:
        if not self._updating:
            raise RuntimeError("No index update in progress")
        self._updating = False

    def insert_item(self, vector: list[float], metadata: ChunkMetadata) -> str:
        if not self._updating:
            raise RuntimeError("insert_item called outside begin_update/end_update")
        item_id = uuid.uuid4().hex
        self._get_collection().add(
            ids=[item_id],
            embeddings=[list(vector)],
            metadatas=[metadata.to_store()],
            documents=[metadata.text],
        )
        return item_id

    def list_items(self) -> list[IndexedItem]:
        results = self._get_collection().get(include=["embeddings", "metadatas", "documents"])
        ids = results.get("ids") or []
        embeddings = results.get("embeddings")
        metadatas = results.get("metadatas") or []
        documents = results.get("documents") or []

        items = []
        for i, item_id in enumerate(ids):
            items.append(IndexedItem(
                id=item_id,
                vector=[float(v) for v in embeddings[i]],
                metadata=ChunkMetadata.from_store(metadatas[i] or {}, documents[i]),
            ))
        return items

    def delete_index(self) -> None:
        if self.is_index_created():
            self.client.delete_collection(self.collection_name)
        self._collection = None

    def query_items(self, vector: list[float], k: int) -> list[tuple[IndexedItem, float]]:
        """Return up to k nearest items with cosine similarity scores, best first."""
        collection = self._get_collection()
        count = collection.count()
        if count == 0:
            return []

        results = collection.query(
            query_embeddings=[list(vector)],
            n_results=min(k, count),
            include=["metadatas", "documents", "distances"],
        )
        if not results["ids"] or not results["ids"][0]:
            return []

        hits = []
        for i, item_id in enumerate(results["ids"][0]):
            metadata = ChunkMetadata.from_store(
                results["metadatas"][0][i] or {},
                results["documents"][0][i],
            )
            # cosine space: distance = 1 - similarity
            score = 1.0 - float(results["distances"][0][i])
            hits.append((IndexedItem(id=item_id, vector=[], metadata=metadata), score))
        return hits
