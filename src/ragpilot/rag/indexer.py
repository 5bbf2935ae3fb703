"""Index manager: owns every mutation session against the index store."""

import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from ..cancellation import CancellationToken
from ..errors import NotInitializedError
from ..logging_config import get_logger
from .chunker import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_text
from .discovery import discover_files
from .embeddings import EmbeddingProvider
from .models import ChunkMetadata, IndexedItem, IngestStats, SourceDocument, SourceKind
from .registry import ENTIRE_WORKSPACE, IndexedSourceRegistry
from .vectorstore import IndexStore

logger = get_logger(__name__)

ProgressCallback = Callable[[str, float], None]


def _relative_label(path: Path, root: Path) -> str:
    return path.resolve().relative_to(root.resolve()).as_posix()


class IndexManager:
    """Batch ingestion, predicate removal, clearing and the query read path.

    Mutations and queries are serialized on one process-level lock: a query
    never starts while a mutation session is open.
    """

    def __init__(
        self,
        store: IndexStore,
        embedder: EmbeddingProvider,
        registry: IndexedSourceRegistry,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        include_patterns: Iterable[str] = ("*",),
        exclude_patterns: Iterable[str] = (),
        max_file_bytes: Optional[int] = 1_000_000,
    ):
        self.store = store
        self.embedder = embedder
        self.registry = registry
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.include_patterns = list(include_patterns)
        self.exclude_patterns = list(exclude_patterns)
        self.max_file_bytes = max_file_bytes
        self._lock = threading.Lock()
        self._initialized = False

    def initialize(self) -> None:
        """Create the index if needed and load the source registry."""
        try:
            if not self.store.is_index_created():
                logger.info("Creating new vector index")
                self.store.create_index()
        except Exception as e:
            raise NotInitializedError(f"Index store unavailable: {e}") from e
        self.registry.load()
        self._initialized = True
        logger.debug("Index ready with %s registered sources", len(self.registry))

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("Index manager not initialized")

    @contextmanager
    def _mutation_session(self) -> Iterator[None]:
        self._require_initialized()
        with self._lock:
            self.store.begin_update()
            try:
                yield
            finally:
                self.store.end_update()

    def has_index(self) -> bool:
        return self._initialized and self.store.is_index_created()

    def indexed_sources(self) -> list[str]:
        return self.registry.sources()

    # ---- ingestion ----

    def ingest(
        self,
        documents: Iterable[SourceDocument],
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IngestStats:
        """Chunk, embed and insert documents inside one mutation session.

        A document that fails to read, embed or insert is logged and skipped.
        Cancellation is checked between documents; items already inserted
        stay committed. Re-ingesting a document appends a fresh set of items.

        Returns:
            IngestStats for this session
        """
        documents = list(documents)
        stats = IngestStats()
        start_time = time.time()
        total = len(documents)

        with self._mutation_session():
            for document in documents:
                if cancel_token is not None and cancel_token.is_cancelled:
                    logger.info("Ingestion cancelled after %s/%s files", stats.files_indexed, total)
                    stats.cancelled = True
                    break

                try:
                    inserted = self._ingest_document(document)
                except NotInitializedError:
                    raise
                except Exception as e:
                    logger.warning("Failed to index %s: %s", document.file, e, exc_info=True)
                    stats.failed_files.append(document.file)
                    continue

                stats.files_indexed += 1
                stats.chunks_created += inserted
                if progress is not None:
                    progress(f"Indexing {document.file}", 100.0 / total)
                if total <= 10 or stats.files_indexed % 10 == 0:
                    logger.info(
                        "Indexed %s/%s files (%s chunks)...",
                        stats.files_indexed, total, stats.chunks_created,
                    )

        stats.time_taken = time.time() - start_time
        logger.info(
            "Ingestion finished: %s files, %s chunks, %s failed in %.1fs",
            stats.files_indexed, stats.chunks_created, len(stats.failed_files), stats.time_taken,
        )
        return stats

    def _ingest_document(self, document: SourceDocument) -> int:
        text = document.read_text()
        chunks = chunk_text(text, self.chunk_size, self.chunk_overlap)
        for chunk in chunks:
            vector = self.embedder.embed(chunk.text)
            self.store.insert_item(vector, document.metadata_for(chunk.start_line, chunk.text))
        return len(chunks)

    def _discover(self, root: Path, base: Path) -> list[Path]:
        return discover_files(
            root,
            include_patterns=self.include_patterns,
            exclude_patterns=self.exclude_patterns,
            max_file_bytes=self.max_file_bytes,
            base=base,
        )

    def index_path(
        self,
        workspace_root: str | Path,
        folder: str | Path | None = None,
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IngestStats:
        """Index a workspace folder, or the entire workspace when ``folder`` is None.

        The folder label (or ENTIRE_WORKSPACE) is added to the registry.
        """
        workspace_root = Path(workspace_root).resolve()
        target = workspace_root if folder is None else (workspace_root / folder).resolve()
        label = ENTIRE_WORKSPACE if folder is None else _relative_label(target, workspace_root)

        logger.info("Indexing %s", target)
        files = self._discover(target, base=workspace_root)
        documents = [
            SourceDocument(file=_relative_label(path, workspace_root), path=path)
            for path in files
        ]
        stats = self.ingest(documents, cancel_token=cancel_token, progress=progress)

        self.registry.add(label)
        self.registry.save()
        return stats

    def index_files(
        self,
        workspace_root: str | Path,
        files: Iterable[str | Path],
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IngestStats:
        """Index explicit files; each successfully indexed file is registered."""
        workspace_root = Path(workspace_root).resolve()
        documents = []
        for file in files:
            path = (workspace_root / file).resolve()
            documents.append(SourceDocument(file=_relative_label(path, workspace_root), path=path))

        stats = self.ingest(documents, cancel_token=cancel_token, progress=progress)

        failed = set(stats.failed_files)
        for document in documents[:stats.files_indexed + len(stats.failed_files)]:
            if document.file not in failed:
                self.registry.add(document.file)
        self.registry.save()
        return stats

    def index_repo(
        self,
        repo_key: str,
        repo_path: str | Path,
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IngestStats:
        """Index an external repository checkout under ``repo_key`` (owner/name)."""
        repo_path = Path(repo_path).resolve()
        logger.info("Indexing repository %s from %s", repo_key, repo_path)
        documents = [
            SourceDocument(
                file=_relative_label(path, repo_path),
                source=SourceKind.EXTERNAL_REPO,
                repo_key=repo_key,
                path=path,
            )
            for path in self._discover(repo_path, base=repo_path)
        ]
        return self.ingest(documents, cancel_token=cancel_token, progress=progress)

    # ---- removal ----

    def remove_where(self, predicate: Callable[[ChunkMetadata], bool]) -> int:
        """Drop every item whose metadata satisfies ``predicate``.

        The store cannot delete by id without risking id collisions on later
        inserts, so the index is rebuilt: list all, keep the rest, delete and
        recreate the index, then re-insert kept items as new entries.

        Returns:
            Number of items removed
        """
        with self._mutation_session():
            all_items = self.store.list_items()
            kept: list[IndexedItem] = [item for item in all_items if not predicate(item.metadata)]

            self.store.delete_index()
            self.store.create_index()
            for item in kept:
                self.store.insert_item(item.vector, item.metadata)

        removed = len(all_items) - len(kept)
        logger.info("Rebuilt index: removed %s items, kept %s", removed, len(kept))
        return removed

    def remove_repo(self, repo_key: str) -> int:
        return self.remove_where(
            lambda meta: meta.source is SourceKind.EXTERNAL_REPO and meta.repo_key == repo_key
        )

    def remove_folder(self, label: str) -> int:
        """Remove a registered folder or file label and its workspace items."""
        if label == ENTIRE_WORKSPACE:
            predicate = lambda meta: meta.source is SourceKind.WORKSPACE
        else:
            prefix = label.rstrip("/")
            predicate = lambda meta: (
                meta.source is SourceKind.WORKSPACE
                and (meta.file == prefix or meta.file.startswith(prefix + "/"))
            )

        removed = self.remove_where(predicate)
        self.registry.discard(label)
        self.registry.save()
        return removed

    def remove_source(self, key: str) -> int:
        """Remove a source by key: a registry label, otherwise a repo key."""
        if key in self.registry:
            return self.remove_folder(key)
        return self.remove_repo(key)

    def clear_all(self) -> None:
        """Destroy and recreate an empty index and clear the registry."""
        with self._mutation_session():
            self.store.delete_index()
            self.store.create_index()
        self.registry.clear()
        self.registry.save()
        logger.info("Index cleared")

    # ---- read path ----

    def query(self, vector: list[float], k: int) -> list[tuple[IndexedItem, float]]:
        if not self.has_index():
            return []
        with self._lock:
            return self.store.query_items(vector, k)

    def stats(self) -> dict:
        if not self.has_index():
            return {"total_chunks": 0, "total_files": 0, "sources": []}
        with self._lock:
            items = self.store.list_items()
        files = {(item.metadata.repo_key, item.metadata.file) for item in items}
        return {
            "total_chunks": len(items),
            "total_files": len(files),
            "sources": self.registry.sources(),
        }
