"""Data types shared by the indexing and retrieval pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class SourceKind(str, Enum):
    """Where an indexed chunk came from."""
    WORKSPACE = "workspace"
    EXTERNAL_REPO = "github"


@dataclass(frozen=True)
class ChunkMetadata:
    """Metadata stored alongside every embedded chunk.

    ``repo_key`` (``owner/name``) is present exactly when the chunk comes
    from an external repository.
    """

    file: str
    line: int
    source: SourceKind
    text: str
    repo_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.source, SourceKind):
            object.__setattr__(self, "source", SourceKind(self.source))
        if self.source is SourceKind.EXTERNAL_REPO and not self.repo_key:
            raise ValueError(f"External repository chunk for {self.file} has no repo_key")
        if self.source is SourceKind.WORKSPACE and self.repo_key is not None:
            raise ValueError(f"Workspace chunk for {self.file} must not carry a repo_key")

    @property
    def label(self) -> str:
        """Human-readable source label used in prompts and citations."""
        if self.source is SourceKind.EXTERNAL_REPO:
            return f"[{self.repo_key}] {self.file}"
        return self.file

    def to_store(self) -> dict[str, Any]:
        """Flatten to scalar metadata. ``text`` is stored as the document."""
        meta: dict[str, Any] = {
            "file": self.file,
            "line": self.line,
            "source": self.source.value,
        }
        if self.repo_key is not None:
            meta["repo"] = self.repo_key
        return meta

    @classmethod
    def from_store(cls, meta: dict[str, Any], document: str | None) -> "ChunkMetadata":
        return cls(
            file=str(meta.get("file", "")),
            line=int(meta.get("line", 1)),
            source=SourceKind(meta.get("source", SourceKind.WORKSPACE.value)),
            text=document or "",
            repo_key=meta.get("repo"),
        )


@dataclass
class IndexedItem:
    """A stored (vector, metadata) pair. ``id`` is owned by the store."""
    id: str
    vector: list[float]
    metadata: ChunkMetadata


@dataclass
class RetrievedDoc:
    """A chunk returned by a similarity query."""

    text: str
    metadata: ChunkMetadata
    score: float

    @property
    def label(self) -> str:
        return self.metadata.label

    def __str__(self) -> str:
        return f"{self.label}:{self.metadata.line} (score: {self.score:.3f})"


@dataclass
class SourceDocument:
    """One ingestion input: raw text (or a file to read) plus its metadata template."""

    file: str
    source: SourceKind = SourceKind.WORKSPACE
    repo_key: Optional[str] = None
    path: Optional[Path] = None
    text: Optional[str] = None

    def read_text(self) -> str:
        if self.text is not None:
            return self.text
        if self.path is None:
            raise ValueError(f"Source document {self.file} has neither text nor path")
        return self.path.read_text(encoding="utf-8")

    def metadata_for(self, line: int, text: str) -> ChunkMetadata:
        return ChunkMetadata(
            file=self.file,
            line=line,
            source=self.source,
            text=text,
            repo_key=self.repo_key,
        )


@dataclass
class IngestStats:
    """Outcome of one ingestion session."""
    files_indexed: int = 0
    chunks_created: int = 0
    failed_files: list[str] = field(default_factory=list)
    cancelled: bool = False
    time_taken: float = 0.0
