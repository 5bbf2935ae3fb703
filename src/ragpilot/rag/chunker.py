"""Line-window chunking of source text."""

from dataclasses import dataclass

from ..errors import ChunkingConfigError

DEFAULT_CHUNK_SIZE = 100
DEFAULT_CHUNK_OVERLAP = 20


@dataclass(frozen=True)
class Chunk:
    """A contiguous window of lines prepared for embedding."""

    text: str
    start_line: int  # 1-based


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Chunk]:
    """Split text into overlapping windows of lines.

    Windows hold ``chunk_size`` lines and advance by ``chunk_size - overlap``
    lines. A window's ``start_line`` is the 1-based index of its first line.
    Windows that contain only whitespace are dropped.

    Args:
        text: Raw text to split
        chunk_size: Lines per window
        overlap: Lines shared between consecutive windows

    Returns:
        List of Chunk objects in document order

    Raises:
        ChunkingConfigError: If the parameters cannot advance through the text
    """
    if chunk_size < 1:
        raise ChunkingConfigError(f"chunk_size must be >= 1, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise ChunkingConfigError(
            f"overlap must be in [0, chunk_size), got overlap={overlap} chunk_size={chunk_size}"
        )

    lines = text.split("\n")
    step = chunk_size - overlap
    chunks = []

    for start in range(0, len(lines), step):
        window = "\n".join(lines[start:start + chunk_size])
        if window.strip():
            chunks.append(Chunk(text=window, start_line=start + 1))

    return chunks
