"""Pytest configuration and shared fixtures."""

import copy

import pytest

from ragpilot.config import DEFAULT_CONFIG
from ragpilot.context import build_app_context
from ragpilot.rag.indexer import IndexManager
from ragpilot.rag.registry import IndexedSourceRegistry
from ragpilot.rag.retriever import Retriever
from ragpilot.testing import HashEmbedder, InMemoryIndexStore, create_mock_llm, create_mock_tools


@pytest.fixture
def mock_llm_factory():
    """Factory for scripted chat models.

    Example:
        >>> def test_loop(mock_llm_factory):
        ...     llm = mock_llm_factory(["plain answer"])
    """
    def _factory(responses, error=None):
        return create_mock_llm(responses, error=error)
    return _factory


@pytest.fixture
def mock_tools_factory():
    def _factory(responses=None):
        return create_mock_tools(responses)
    return _factory


@pytest.fixture
def workspace(tmp_path):
    """A small workspace with a few indexable files."""
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "src" / "config.py").write_text(
        "def load_config(path):\n    return parse_json(path)\n", encoding="utf-8"
    )
    (root / "src" / "server.py").write_text(
        "def start_server(port):\n    listen on port for http requests\n", encoding="utf-8"
    )
    (root / "docs" / "guide.md").write_text(
        "# Guide\n\nRun the server with the start command.\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def store():
    return InMemoryIndexStore()


@pytest.fixture
def embedder():
    return HashEmbedder()


@pytest.fixture
def registry(tmp_path):
    return IndexedSourceRegistry(tmp_path / "storage" / "indexed-folders.json")


@pytest.fixture
def index_manager(store, embedder, registry):
    manager = IndexManager(
        store,
        embedder,
        registry,
        chunk_size=10,
        chunk_overlap=2,
        include_patterns=["*.py", "*.md"],
    )
    manager.initialize()
    return manager


@pytest.fixture
def retriever(index_manager, embedder):
    return Retriever(index_manager, embedder, default_k=5)


@pytest.fixture
def test_config(tmp_path):
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["storage_dir"] = str(tmp_path / "storage")
    config["verbose"] = False
    return config


@pytest.fixture
def app_context_factory(test_config, workspace):
    """Build an AppContext on in-memory doubles with a scripted model.

    Example:
        >>> def test_chat(app_context_factory, mock_llm_factory):
        ...     ctx = app_context_factory(models=[mock_llm_factory(["hi"])])
    """
    def _factory(models=None, store=None, embedder=None):
        selected = list(models or [])
        return build_app_context(
            test_config,
            workspace,
            store=store or InMemoryIndexStore(),
            embedder=embedder or HashEmbedder(),
            model_selector=lambda criteria: selected,
        )
    return _factory
