"""
Fixed-window text chunking.

Splits note text into overlapping character windows. Each chunk records
its 0-based position so the original reading order can be restored,
independent of the order in which chunks are later embedded or retrieved.
"""

from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_MAX_CHARS = 1000
DEFAULT_OVERLAP = 200


@dataclass(frozen=True)
class Chunk:
    """A window of note text."""

    content: str
    """The text content of the chunk."""

    index: int
    """Position of the chunk within its note, starting at 0."""


def validate_chunk_params(max_chars: int, overlap: int) -> None:
    """
    Check a chunking policy.

    Raises:
        ValueError: If max_chars <= 0, overlap < 0 or overlap >= max_chars
    """
    if max_chars <= 0:
        raise ValueError(f"max_chars must be positive, got {max_chars}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")
    if overlap >= max_chars:
        raise ValueError(
            f"overlap ({overlap}) must be less than max_chars ({max_chars})"
        )


def chunk_text(
    text: str,
    max_chars: int = DEFAULT_MAX_CHARS,
    overlap: int = DEFAULT_OVERLAP,
) -> list[Chunk]:
    """
    Split text into overlapping fixed-size windows.

    The window start advances by ``max_chars - overlap`` per step and each
    chunk spans ``[start, min(start + max_chars, len(text)))``. Chunking
    stops at the first window that reaches the end of the text, so no
    chunk lies entirely inside the previous chunk's overlap.

    Args:
        text: Note text to chunk
        max_chars: Maximum characters per chunk
        overlap: Characters repeated at the start of the next chunk

    Returns:
        Chunks in reading order; empty for empty text

    Raises:
        ValueError: If the chunking policy is invalid

    Example:
        >>> [c.content for c in chunk_text("abcdefghij", max_chars=4, overlap=1)]
        ['abcd', 'defg', 'ghij']
    """
    validate_chunk_params(max_chars, overlap)

    step = max_chars - overlap
    chunks: list[Chunk] = []
    for start in range(0, len(text), step):
        end = min(start + max_chars, len(text))
        chunks.append(Chunk(content=text[start:end], index=len(chunks)))
        if end == len(text):
            break

    return chunks


def reconstruct_text(chunks: Sequence[Chunk], overlap: int) -> str:
    """
    Rebuild the original text from chunks produced with the given overlap.

    Chunks are ordered by index first, so the input order does not matter.
    """
    ordered = sorted(chunks, key=lambda c: c.index)
    if not ordered:
        return ""

    parts = [ordered[0].content]
    parts.extend(chunk.content[overlap:] for chunk in ordered[1:])
    return "".join(parts)
