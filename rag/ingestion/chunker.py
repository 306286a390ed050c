"""
Fixed-size, overlapping character chunking.
"""

from ..models.schemas import Chunk

# Default chunk settings
DEFAULT_CHUNK_SIZE = 1000  # characters
DEFAULT_CHUNK_OVERLAP = 200  # characters


def chunk_text(
    text: str,
    document_id: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Chunk]:
    """
    Split text into overlapping windows.

    Windows are chunk_size characters long and start every
    chunk_size - chunk_overlap characters; each is stripped of
    surrounding whitespace. Windows that are blank after stripping are
    dropped and the rest are numbered densely from zero. The chunks
    carry no embedding yet.

    Args:
        text: Text to split.
        document_id: ID of the owning document.
        chunk_size: Window length in characters.
        chunk_overlap: Characters shared by consecutive windows.

    Returns:
        List of chunks; empty for blank text.
    """
    if chunk_size <= 0 or not 0 <= chunk_overlap < chunk_size:
        raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")

    if not text or not text.strip():
        return []

    step = chunk_size - chunk_overlap
    chunks = []
    for start in range(0, len(text), step):
        content = text[start : start + chunk_size].strip()
        if not content:
            continue
        chunks.append(Chunk(
            document_id=document_id,
            content=content,
            chunk_index=len(chunks),
        ))
    return chunks
