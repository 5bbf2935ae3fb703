"""Read-only workspace tools with bounded results.

Every path is resolved against the workspace root given to
``make_workspace_tools``; paths that escape the root are rejected.
"""

import re
from pathlib import Path

from langchain_core.tools import BaseTool, tool

from ..rag.discovery import load_ignore_patterns, should_ignore


def _resolve(root: Path, path: str) -> Path:
    full_path = (root / path).resolve()
    if full_path != root and root not in full_path.parents:
        raise ValueError(f"Path escapes the workspace: {path}")
    return full_path


def _line_count(path: Path) -> int:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return sum(1 for _ in f)
    except (OSError, UnicodeDecodeError):
        return -1


def _expand_braces(pattern: str) -> list[str]:
    """Expand "**/*.{py,md}" into ["**/*.py", "**/*.md"]."""
    match = re.search(r"\{([^}]+)\}", pattern)
    if not match:
        return [pattern]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(_expand_braces(pattern[:match.start()] + option.strip() + pattern[match.end():]))
    return expanded


def make_workspace_tools(workspace_root: str | Path) -> list[BaseTool]:
    """Build the file tools bound to ``workspace_root``."""
    root = Path(workspace_root).resolve()

    @tool
    def read_file_lines(path: str, start_line: int = 1, end_line: int | None = None, max_lines: int = 100) -> str:
        """Read specific lines from a workspace file.

        Use this to read the code around a location found by rag_search.

        Args:
            path: Path relative to the workspace root
            start_line: First line to read (1-indexed)
            end_line: Last line to read (inclusive), or None for max_lines from start
            max_lines: Maximum number of lines to return

        Returns:
            Lines formatted as "line| content", or an error message
        """
        full_path = _resolve(root, path)
        if not full_path.exists():
            return f"File does not exist: {path}"
        if not full_path.is_file():
            return f"Not a file: {path}"

        try:
            all_lines = full_path.read_text(encoding="utf-8").splitlines()
        except UnicodeDecodeError:
            return f"Cannot read file (not text): {path}"

        total_lines = len(all_lines)
        start_idx = max(0, start_line - 1)
        end_idx = min(start_idx + max_lines, total_lines) if end_line is None else min(end_line, total_lines)
        end_idx = min(end_idx, start_idx + max_lines)

        result_lines = []
        for i, line in enumerate(all_lines[start_idx:end_idx], start=start_idx + 1):
            line_content = line.rstrip()
            if len(line_content) > 200:
                line_content = line_content[:200] + "..."
            result_lines.append(f"{i:4d}| {line_content}")

        header = f"File: {path} (lines {start_idx + 1}-{end_idx} of {total_lines})"
        return header + "\n" + "\n".join(result_lines)

    @tool
    def get_file_info(path: str) -> str:
        """Get the size and line count of a workspace file without reading it.

        Args:
            path: Path relative to the workspace root

        Returns:
            File information or an error message
        """
        full_path = _resolve(root, path)
        if not full_path.exists():
            return f"File does not exist: {path}"
        if full_path.is_dir():
            return f"{path} is a directory"

        size_kb = full_path.stat().st_size / 1024
        line_count = _line_count(full_path)
        return (
            f"File: {path}\n"
            f"Size: {size_kb:.1f} KB\n"
            f"Lines: {line_count if line_count >= 0 else 'N/A (binary)'}\n"
            f"Extension: {full_path.suffix or 'none'}"
        )

    @tool
    def list_directory(path: str = ".", max_depth: int = 2, max_items: int = 50) -> str:
        """List a workspace directory as a tree with line counts for files.

        Args:
            path: Path relative to the workspace root ("." for the root)
            max_depth: Maximum depth to recurse
            max_items: Maximum number of entries to return

        Returns:
            Directory listing or an error message
        """
        full_path = _resolve(root, path)
        if not full_path.exists():
            return f"Path does not exist: {path}"
        if not full_path.is_dir():
            return f"Not a directory: {path}"

        ignore_patterns = load_ignore_patterns(root)
        items: list[str] = []
        truncated = False

        def walk(dir_path: Path, depth: int, prefix: str) -> None:
            nonlocal truncated
            if depth > max_depth or truncated:
                return
            entries = sorted(dir_path.iterdir(), key=lambda e: (not e.is_dir(), e.name))
            for entry in entries:
                if truncated:
                    return
                if len(items) >= max_items:
                    items.append(f"{prefix}... (truncated)")
                    truncated = True
                    return
                rel_path = entry.relative_to(root).as_posix()
                if should_ignore(rel_path + ("/" if entry.is_dir() else ""), ignore_patterns):
                    continue
                if entry.is_dir():
                    items.append(f"{prefix}{entry.name}/")
                    walk(entry, depth + 1, prefix + "  ")
                else:
                    line_count = _line_count(entry)
                    suffix = f" ({line_count} lines)" if line_count >= 0 else ""
                    items.append(f"{prefix}{entry.name}{suffix}")

        walk(full_path, 0, "")
        return "\n".join(items) if items else "Directory is empty."

    @tool
    def find_files_by_name(pattern: str, max_results: int = 20) -> str:
        """Find workspace files matching a glob pattern.

        Args:
            pattern: Glob pattern such as "*.py", "**/test_*.py" or "**/*.{ts,tsx}"
            max_results: Maximum number of results

        Returns:
            Matching relative paths with line counts
        """
        ignore_patterns = load_ignore_patterns(root)
        seen = set()
        results = []
        for expanded in _expand_braces(pattern):
            for match in sorted(root.glob(expanded)):
                if match in seen or not match.is_file():
                    continue
                seen.add(match)
                rel_path = match.relative_to(root).as_posix()
                if should_ignore(rel_path, ignore_patterns):
                    continue
                line_count = _line_count(match)
                results.append(f"{rel_path} ({line_count} lines)" if line_count >= 0 else rel_path)
                if len(results) >= max_results:
                    break
            if len(results) >= max_results:
                break

        if not results:
            return f"No files matching pattern: {pattern}"
        return "\n".join(results)

    return [read_file_lines, get_file_info, list_directory, find_files_by_name]
