"""Unit tests for chunk metadata invariants."""

import pytest

from ragpilot.rag.models import ChunkMetadata, RetrievedDoc, SourceDocument, SourceKind


def test_external_chunk_requires_repo_key():
    with pytest.raises(ValueError):
        ChunkMetadata(file="a.py", line=1, source=SourceKind.EXTERNAL_REPO, text="x")


def test_workspace_chunk_rejects_repo_key():
    with pytest.raises(ValueError):
        ChunkMetadata(file="a.py", line=1, source=SourceKind.WORKSPACE, text="x", repo_key="octo/lib")


def test_source_string_is_coerced():
    meta = ChunkMetadata(file="a.py", line=1, source="github", text="x", repo_key="octo/lib")
    assert meta.source is SourceKind.EXTERNAL_REPO


def test_labels():
    workspace = ChunkMetadata(file="src/a.py", line=3, source=SourceKind.WORKSPACE, text="x")
    external = ChunkMetadata(file="lib/b.py", line=1, source=SourceKind.EXTERNAL_REPO, text="x", repo_key="octo/lib")
    assert workspace.label == "src/a.py"
    assert external.label == "[octo/lib] lib/b.py"
    assert str(RetrievedDoc(text="x", metadata=workspace, score=0.5)) == "src/a.py:3 (score: 0.500)"


def test_store_round_trip():
    meta = ChunkMetadata(file="lib/b.py", line=7, source=SourceKind.EXTERNAL_REPO, text="body", repo_key="octo/lib")
    stored = meta.to_store()
    assert stored == {"file": "lib/b.py", "line": 7, "source": "github", "repo": "octo/lib"}
    assert ChunkMetadata.from_store(stored, "body") == meta


def test_workspace_store_form_has_no_repo():
    meta = ChunkMetadata(file="a.py", line=1, source=SourceKind.WORKSPACE, text="x")
    assert "repo" not in meta.to_store()


def test_source_document_prefers_inline_text(tmp_path):
    path = tmp_path / "a.py"
    path.write_text("from disk", encoding="utf-8")
    assert SourceDocument(file="a.py", path=path).read_text() == "from disk"
    assert SourceDocument(file="a.py", path=path, text="inline").read_text() == "inline"
