"""Command line interface for indexing, searching and chatting.

Usage:
    python -m ragpilot index [PATH]
    python -m ragpilot index-files FILE [FILE ...]
    python -m ragpilot add-repo OWNER/NAME
    python -m ragpilot list
    python -m ragpilot remove KEY
    python -m ragpilot clear
    python -m ragpilot search QUERY [-k N]
    python -m ragpilot stats
    python -m ragpilot chat [--command NAME] [--file PATH ...] [PROMPT]
"""

import argparse
import sys
from pathlib import Path

from .cancellation import CancellationToken, cancel_on_sigint
from .chat import ChatParticipant, ChatRequest, ConversationHistory, ResponseStream
from .chat.response import MarkdownPart, ProgressPart, ReferencePart, ResponsePart, WarningPart
from .config import load_config
from .context import AppContext, build_app_context
from .errors import RagPilotError
from .logging_config import get_logger, setup_logging
from .rag.models import IngestStats

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ragpilot",
        description="Index a workspace and chat with a model grounded in it",
    )
    parser.add_argument(
        "--workspace", "-w",
        default=".",
        help="Workspace root directory (default: current directory)",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to ragpilot.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    index_parser = subparsers.add_parser("index", help="Index the workspace or one folder in it")
    index_parser.add_argument("path", nargs="?", default=None, help="Folder relative to the workspace")

    files_parser = subparsers.add_parser("index-files", help="Index specific files")
    files_parser.add_argument("files", nargs="+", help="Files relative to the workspace")

    repo_parser = subparsers.add_parser("add-repo", help="Clone (or update) and index a GitHub repository")
    repo_parser.add_argument("url", help="owner/name or https://github.com/owner/name")

    subparsers.add_parser("list", help="List indexed sources and repositories")

    remove_parser = subparsers.add_parser("remove", help="Remove an indexed folder, file or repository")
    remove_parser.add_argument("key", help="Source label as shown by 'list', or owner/name")

    subparsers.add_parser("clear", help="Delete the whole index")

    search_parser = subparsers.add_parser("search", help="Semantic search over the index")
    search_parser.add_argument("query", help="Natural language query")
    search_parser.add_argument("-k", type=int, default=None, help="Number of results")

    subparsers.add_parser("stats", help="Show index statistics")

    chat_parser = subparsers.add_parser("chat", help="Ask questions about the indexed code")
    chat_parser.add_argument("prompt", nargs="?", default=None, help="Single prompt (omit for interactive mode)")
    chat_parser.add_argument("--command", dest="chat_command", default=None, help="Slash command to apply")
    chat_parser.add_argument("--file", dest="files", action="append", default=[], help="Attach a file")

    return parser


def _print_progress(message: str, increment: float) -> None:
    print(f"  {message}", file=sys.stderr)


def _print_ingest_stats(stats: IngestStats) -> None:
    print(f"  Files indexed: {stats.files_indexed}")
    print(f"  Chunks created: {stats.chunks_created}")
    if stats.failed_files:
        print(f"  Failed files: {len(stats.failed_files)}")
        for file in stats.failed_files:
            print(f"    - {file}")
    print(f"  Time taken: {stats.time_taken:.2f}s")
    if stats.cancelled:
        print("  ⚠️ Cancelled; files indexed so far are kept")


def _render_part(part: ResponsePart) -> None:
    match part:
        case MarkdownPart(text=text):
            print(text, end="", flush=True)
        case ProgressPart(message=message):
            print(f"⏳ {message}", file=sys.stderr)
        case WarningPart(message=message):
            print(f"⚠️ {message}", file=sys.stderr)
        case ReferencePart():
            pass


def _cmd_index(ctx: AppContext, args: argparse.Namespace) -> int:
    target = ctx.workspace_root if args.path is None else ctx.workspace_root / args.path
    print(f"Indexing: {target}")
    with cancel_on_sigint(CancellationToken()) as token:
        stats = ctx.index_manager.index_path(
            ctx.workspace_root, args.path, cancel_token=token, progress=_print_progress
        )
    print("\n✓ Indexing finished")
    _print_ingest_stats(stats)
    return 0


def _cmd_index_files(ctx: AppContext, args: argparse.Namespace) -> int:
    with cancel_on_sigint(CancellationToken()) as token:
        stats = ctx.index_manager.index_files(
            ctx.workspace_root, args.files, cancel_token=token, progress=_print_progress
        )
    print("\n✓ Indexing finished")
    _print_ingest_stats(stats)
    return 0


def _cmd_add_repo(ctx: AppContext, args: argparse.Namespace) -> int:
    repo = ctx.repo_manager.fetch(args.url)
    print(f"✓ Repository {repo.key} ready at {repo.path}")
    removed = ctx.index_manager.remove_repo(repo.key)
    if removed:
        print(f"  Dropped {removed} stale chunks")
    with cancel_on_sigint(CancellationToken()) as token:
        stats = ctx.index_manager.index_repo(
            repo.key, repo.path, cancel_token=token, progress=_print_progress
        )
    _print_ingest_stats(stats)
    return 0


def _cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    sources = ctx.index_manager.indexed_sources()
    repos = ctx.repo_manager.repos()
    if not sources and not repos:
        print("Nothing indexed yet.")
        return 0
    for label in sources:
        print(f"📁 {label}")
    for repo in repos:
        print(f"📦 {repo.key}  (updated {repo.indexed_at})")
    return 0


def _cmd_remove(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.key in ctx.repo_manager and args.key not in ctx.registry:
        removed = ctx.index_manager.remove_repo(args.key)
        ctx.repo_manager.remove(args.key)
    else:
        removed = ctx.index_manager.remove_source(args.key)
    print(f"✓ Removed {args.key} ({removed} chunks)")
    return 0


def _cmd_clear(ctx: AppContext, args: argparse.Namespace) -> int:
    ctx.index_manager.clear_all()
    print("✓ Index cleared")
    return 0


def _cmd_search(ctx: AppContext, args: argparse.Namespace) -> int:
    docs = ctx.retriever.search(args.query, k=args.k)
    if not docs:
        print("No results.")
        return 0
    for i, doc in enumerate(docs, 1):
        print(f"\n--- {i}. {doc} ---")
        print(doc.text)
    return 0


def _cmd_stats(ctx: AppContext, args: argparse.Namespace) -> int:
    stats = ctx.index_manager.stats()
    print("\n📊 Index Statistics")
    print("=" * 50)
    print(f"  Workspace: {ctx.workspace_root}")
    print(f"  Total files: {stats['total_files']}")
    print(f"  Total chunks: {stats['total_chunks']}")
    print(f"  Sources: {', '.join(stats['sources']) or 'none'}")
    print(f"  Repositories: {', '.join(r.key for r in ctx.repo_manager.repos()) or 'none'}")
    print("=" * 50)
    return 0


def _ask(participant: ChatParticipant, history: ConversationHistory, request: ChatRequest) -> int:
    response = ResponseStream()
    response.subscribe(_render_part)
    with cancel_on_sigint(CancellationToken()) as token:
        result = participant.handle_request(request, history.turns, response, token)
    print()
    history.add_user(request.prompt, request.command)
    history.add_assistant(response.text)
    return 1 if result.error else 0


def _cmd_chat(ctx: AppContext, args: argparse.Namespace) -> int:
    participant = ChatParticipant(ctx)
    history = ConversationHistory()

    if args.prompt is not None:
        return _ask(participant, history, ChatRequest(args.prompt, args.chat_command, list(args.files)))

    commands = ctx.prompt_library.available()
    print("Interactive chat. Empty line or Ctrl+D to exit.")
    if commands:
        print("Commands: " + ", ".join(f"/{name}" for name in commands))
    while True:
        try:
            prompt = input("\n> ").strip()
        except EOFError:
            break
        if not prompt:
            break
        _ask(participant, history, ChatRequest(prompt, args.chat_command, list(args.files)))
    return 0


_COMMANDS = {
    "index": _cmd_index,
    "index-files": _cmd_index_files,
    "add-repo": _cmd_add_repo,
    "list": _cmd_list,
    "remove": _cmd_remove,
    "clear": _cmd_clear,
    "search": _cmd_search,
    "stats": _cmd_stats,
    "chat": _cmd_chat,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ragpilot CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.config)
    log_level = "DEBUG" if args.verbose else config.get("log_level", "INFO")
    setup_logging(level=log_level, log_file=config.get("log_file"))
    if args.verbose:
        config["verbose"] = True

    workspace_root = Path(args.workspace).resolve()
    if not workspace_root.is_dir():
        logger.error("Workspace path does not exist: %s", workspace_root)
        return 1

    try:
        ctx = build_app_context(config, workspace_root)
        return _COMMANDS[args.command](ctx, args)
    except KeyboardInterrupt:
        print("\n\n👋 Stopped")
        return 130
    except RagPilotError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"\n❌ Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"\n❌ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
