"""Fixed-width text chunking."""

from collections.abc import Iterator

from docqa.constants import DEFAULT_CHUNK_SIZE


def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split text into consecutive chunks of at most chunk_size characters.

    No sentence or word boundaries are considered. Joining the chunks
    reproduces the input exactly, newlines included.

    Args:
        text: Text to split
        chunk_size: Maximum characters per chunk

    Returns:
        list[str]: The chunks, empty for empty text

    Raises:
        ValueError: If chunk_size is smaller than 1
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    return [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]


def enumerate_chunks(
    text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, start: int = 0
) -> Iterator[tuple[int, str]]:
    """Yield (index, chunk) pairs with indices counting up from start."""
    yield from enumerate(chunk_text(text, chunk_size), start=start)
