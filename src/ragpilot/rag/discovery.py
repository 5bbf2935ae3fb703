"""File discovery for indexing: include/exclude globs plus .gitignore rules."""

import fnmatch
import re
from pathlib import Path
from typing import Iterable

from ..logging_config import get_logger

logger = get_logger(__name__)

IGNORE_FILES = (".gitignore", ".ragpilotignore")
ALWAYS_SKIPPED_DIRS = frozenset({".git", "node_modules"})

IgnorePattern = tuple[re.Pattern, bool, bool]


def _parse_ignore_pattern(line: str) -> tuple[str | None, bool, bool]:
    """Translate one .gitignore line into a regex.

    Returns:
        (regex_pattern, is_directory_pattern, negated), or (None, False, False) to skip
    """
    pattern = line.strip()
    if not pattern or pattern.startswith("#"):
        return None, False, False

    negated = pattern.startswith("!")
    if negated:
        pattern = pattern[1:]

    is_dir = pattern.endswith("/")
    if is_dir:
        pattern = pattern[:-1]

    pattern = re.escape(pattern)
    pattern = pattern.replace(r"\*\*", "IGNORE_DOUBLE_STAR")
    pattern = pattern.replace(r"\*", r"[^/]*")
    pattern = pattern.replace(r"\?", r"[^/]")
    pattern = pattern.replace("IGNORE_DOUBLE_STAR", r".*")

    if pattern.startswith("/"):
        pattern = "^" + pattern[1:]
    else:
        pattern = "(^|/)" + pattern

    # directory patterns also match everything below the directory
    pattern += "(/|$)" if is_dir else "$"
    return pattern, is_dir, negated


def load_ignore_patterns(root: Path) -> list[IgnorePattern]:
    """Load .gitignore then .ragpilotignore from ``root``.

    .ragpilotignore comes last so its negations can re-include files.
    """
    patterns: list[IgnorePattern] = []
    for name in IGNORE_FILES:
        ignore_path = root / name
        if not ignore_path.is_file():
            continue
        try:
            lines = ignore_path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", ignore_path, e)
            continue
        for line in lines:
            regex, is_dir, negated = _parse_ignore_pattern(line)
            if regex is None:
                continue
            try:
                patterns.append((re.compile(regex), is_dir, negated))
            except re.error:
                logger.debug("Skipping invalid ignore pattern %r in %s", line, ignore_path)
    return patterns


def should_ignore(rel_path: str, patterns: list[IgnorePattern]) -> bool:
    """Check a root-relative POSIX path against ignore patterns (last match wins)."""
    parts = rel_path.split("/")
    if any(p.startswith(".") or p in ALWAYS_SKIPPED_DIRS for p in parts[:-1]):
        return True

    ignored = False
    for pattern, _is_dir, negated in patterns:
        if pattern.search(rel_path):
            ignored = not negated
    return ignored


def matches_any(rel_path: str, globs: Iterable[str]) -> bool:
    """fnmatch against both the file name and the '/'-prefixed relative path."""
    name = rel_path.rsplit("/", 1)[-1]
    anchored = "/" + rel_path
    return any(
        fnmatch.fnmatch(name, g) or fnmatch.fnmatch(anchored, g) or fnmatch.fnmatch(rel_path, g)
        for g in globs
    )


def discover_files(
    root: Path,
    include_patterns: Iterable[str],
    exclude_patterns: Iterable[str] = (),
    max_file_bytes: int | None = 1_000_000,
    base: Path | None = None,
) -> list[Path]:
    """Find indexable files below ``root``.

    Args:
        root: Directory to walk
        include_patterns: Globs a file must match (by name or relative path)
        exclude_patterns: Globs that reject a file
        max_file_bytes: Skip larger files (None disables the check)
        base: Directory that relative paths and ignore files are resolved
            against (defaults to ``root``)

    Returns:
        Sorted list of absolute file paths
    """
    root = Path(root).resolve()
    base = Path(base).resolve() if base is not None else root
    include_patterns = list(include_patterns)
    exclude_patterns = list(exclude_patterns)
    ignore_patterns = load_ignore_patterns(base)

    found = []
    for file_path in root.rglob("*"):
        if not file_path.is_file():
            continue
        try:
            rel_path = file_path.relative_to(base).as_posix()
        except ValueError:
            continue

        if should_ignore(rel_path, ignore_patterns):
            continue
        if not matches_any(rel_path, include_patterns):
            continue
        if exclude_patterns and matches_any(rel_path, exclude_patterns):
            continue
        if max_file_bytes is not None:
            try:
                if file_path.stat().st_size > max_file_bytes:
                    logger.debug("Skipping large file %s", rel_path)
                    continue
            except OSError:
                continue

        found.append(file_path)

    found.sort()
    logger.debug("Discovered %s indexable files under %s", len(found), root)
    return found
