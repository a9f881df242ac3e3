"""Document chunker - heading-aware text splitting with overlap."""

import re
from dataclasses import dataclass

# Markdown headings (# to ######) or numbered section titles ("1. Scope")
HEADING_PATTERN = re.compile(r"^(?:#{1,6}\s+.+|\d+\.\s+.+)$", re.MULTILINE)

SENTENCE_ENDINGS = (". ", ".\n", "! ", "!\n", "? ", "?\n")


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of a document.

    Attributes:
        content: Stripped chunk text (never empty)
        index: 0-based position across the whole document
        heading: Heading of the enclosing section, if any
        start_char: Offset of the slice start in the source text
        end_char: Offset of the slice end in the source text
    """

    content: str
    index: int
    heading: str | None
    start_char: int
    end_char: int


@dataclass(frozen=True)
class _Section:
    content: str
    heading: str | None
    start: int


def _extract_sections(content: str) -> list[_Section]:
    """Split content at heading lines; text before the first heading is its own section."""
    matches = list(HEADING_PATTERN.finditer(content))
    if not matches:
        return [_Section(content, None, 0)]

    sections: list[_Section] = []
    if matches[0].start() > 0:
        sections.append(_Section(content[: matches[0].start()], None, 0))

    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
        heading = re.sub(r"^\d+\.\s*", "", re.sub(r"^#+\s*", "", match.group(0).strip()))
        sections.append(_Section(content[match.start() : end], heading, match.start()))
    return sections


def _find_natural_break(content: str, start: int, end: int) -> int:
    """Best break offset in content[start:end], preferring paragraphs over sentences over words.

    Only breaks in the second half of the window count; otherwise ``end`` is returned.
    """
    window = content[start:end]
    half = len(window) * 0.5

    paragraph = window.rfind("\n\n")
    if paragraph > half:
        return start + paragraph + 2

    best = -1
    for ending in SENTENCE_ENDINGS:
        pos = window.rfind(ending)
        if pos > half and pos + len(ending) > best:
            best = pos + len(ending)
    if best > 0:
        return start + best

    line = window.rfind("\n")
    if line > half:
        return start + line + 1

    space = window.rfind(" ")
    if space > half:
        return start + space + 1

    return end


def chunk_document(
    content: str,
    *,
    max_chunk_size: int = 1000,
    overlap: int = 100,
) -> list[Chunk]:
    """Chunk document text into ordered, overlapping segments.

    Pure function with no I/O or randomness.

    Args:
        content: Raw document text
        max_chunk_size: Maximum characters per chunk
        overlap: Characters shared between consecutive chunks of a section

    Returns:
        Chunks in document order; indices are 0-based and strictly increasing

    Strategy:
        1. Split the text into sections at markdown or numbered headings
        2. Walk each section in windows of max_chunk_size
        3. Pull each window end back to a natural break when one exists
        4. Start the next window ``overlap`` characters before the previous end,
           always moving forward
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    overlap = max(0, min(overlap, max_chunk_size - 1))

    chunks: list[Chunk] = []
    for section in _extract_sections(content):
        text = section.content
        start = 0
        while start < len(text):
            end = min(start + max_chunk_size, len(text))
            if end < len(text):
                natural = _find_natural_break(text, start, end)
                if natural > start:
                    end = natural

            piece = text[start:end].strip()
            if piece:
                chunks.append(
                    Chunk(
                        content=piece,
                        index=len(chunks),
                        heading=section.heading,
                        start_char=section.start + start,
                        end_char=section.start + end,
                    )
                )

            if end >= len(text):
                break
            next_start = end - overlap
            start = next_start if next_start > start else end

    return chunks


def chunk_with_context(content: str, max_size: int = 1000, overlap_ratio: float = 0.1) -> list[Chunk]:
    """Chunk with an overlap proportional to the chunk size."""
    return chunk_document(content, max_chunk_size=max_size, overlap=int(max_size * overlap_ratio))
