"""Application context: every long-lived component, built once from configuration."""

from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Optional

from langchain_core.tools import BaseTool

from .chat.commands import CommandPromptLibrary
from .config import storage_dir
from .llm import ModelSelector, select_chat_models
from .logging_config import get_logger
from .rag.embeddings import EmbeddingProvider, SentenceTransformerEmbedder
from .rag.indexer import IndexManager
from .rag.registry import REGISTRY_FILE, IndexedSourceRegistry
from .rag.retriever import Retriever
from .rag.vectorstore import ChromaIndexStore, IndexStore
from .repos import RepoManager
from .tools import builtin_tools

logger = get_logger(__name__)

INDEX_DIR = "index"


@dataclass
class AppContext:
    config: dict
    workspace_root: Path
    store: IndexStore
    embedder: EmbeddingProvider
    registry: IndexedSourceRegistry
    index_manager: IndexManager
    retriever: Retriever
    repo_manager: RepoManager
    prompt_library: CommandPromptLibrary
    model_selector: ModelSelector
    tools: list[BaseTool]


def build_app_context(
    config: dict,
    workspace_root: str | Path,
    store: Optional[IndexStore] = None,
    embedder: Optional[EmbeddingProvider] = None,
    model_selector: Optional[ModelSelector] = None,
    initialize: bool = True,
) -> AppContext:
    """Wire the components described by ``config``.

    ``store``, ``embedder`` and ``model_selector`` replace the Chroma store,
    the sentence-transformers embedder and the OpenAI-compatible model
    selector respectively; tests pass in-memory doubles here.
    """
    workspace_root = Path(workspace_root).resolve()
    data_dir = storage_dir(config)

    if store is None:
        store = ChromaIndexStore(data_dir / INDEX_DIR)
    if embedder is None:
        embedder = SentenceTransformerEmbedder(config["embedding_model"])
    if model_selector is None:
        model_selector = partial(_select_configured, config["llm"], config.get("verbose", False))

    registry = IndexedSourceRegistry(data_dir / REGISTRY_FILE)
    index_manager = IndexManager(
        store,
        embedder,
        registry,
        chunk_size=config["chunk_size"],
        chunk_overlap=config["chunk_overlap"],
        include_patterns=config["include_patterns"],
        exclude_patterns=config["exclude_patterns"],
        max_file_bytes=config["max_file_bytes"],
    )
    retriever = Retriever(index_manager, embedder, default_k=config["top_k"])
    repo_manager = RepoManager(data_dir)
    prompt_library = CommandPromptLibrary(config["prompt_dirs"], base_dir=workspace_root)

    ctx = AppContext(
        config=config,
        workspace_root=workspace_root,
        store=store,
        embedder=embedder,
        registry=registry,
        index_manager=index_manager,
        retriever=retriever,
        repo_manager=repo_manager,
        prompt_library=prompt_library,
        model_selector=model_selector,
        tools=builtin_tools(workspace_root, retriever),
    )
    if initialize:
        logger.debug("Initializing app context in %s", data_dir)
        index_manager.initialize()
        repo_manager.initialize()
    return ctx


def _select_configured(llm_config: dict, verbose: bool, criteria: Any) -> list:
    return select_chat_models(criteria, llm_config, verbose=verbose)
