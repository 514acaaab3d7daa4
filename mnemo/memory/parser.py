"""
Parser for memory annotations embedded in model output.

The assistant marks facts worth remembering inline using a single-line
micro-format::

    [MEMORY: <content> | <tag1>, <tag2>, <tag3>]

Content runs up to the first pipe, so brackets inside the content are plain
text. Tags run up to the next closing bracket. Markers missing either
delimiter on the same line are skipped.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from mnemo.config.rag_config import RAG_CONFIG

MARKER_OPEN = "[MEMORY:"
_CONTENT_STOP = "|\n"
_TAGS_STOP = "]\n"

_ANNOTATION_SPAN = re.compile(r"\[MEMORY:[^\]]*\]")


@dataclass
class MemoryAnnotation:
    """A memory the model asked to save."""
    content: str
    tags: List[str] = field(default_factory=list)


def _scan_until(text: str, start: int, stops: str) -> Tuple[Optional[str], int]:
    """
    Scan forward from start until one of the stop characters.

    A new marker opening before any stop character also ends the scan.

    Returns:
        Tuple of (stop character or None at end of text/new marker, index)
    """
    index = start
    while index < len(text):
        if text.startswith(MARKER_OPEN, index):
            return None, index
        char = text[index]
        if char in stops:
            return char, index
        index += 1
    return None, index


def _split_tags(raw: str) -> List[str]:
    tags = [tag.strip() for tag in raw.split(",")]
    return [tag for tag in tags if tag][:RAG_CONFIG["MAX_TAGS"]]


def _scan_markers(text: str) -> Iterator[Tuple[int, int, MemoryAnnotation]]:
    """Yield (start, end, annotation) for every well-formed marker."""
    position = 0

    while True:
        start = text.find(MARKER_OPEN, position)
        if start == -1:
            return

        content_start = start + len(MARKER_OPEN)
        stop, pipe_index = _scan_until(text, content_start, _CONTENT_STOP)
        if stop != "|":
            # No pipe on this line: skip the marker and keep scanning
            position = pipe_index if stop is None else pipe_index + 1
            continue

        stop, close_index = _scan_until(text, pipe_index + 1, _TAGS_STOP)
        if stop != "]":
            position = close_index if stop is None else close_index + 1
            continue

        annotation = MemoryAnnotation(
            content=text[content_start:pipe_index].strip(),
            tags=_split_tags(text[pipe_index + 1:close_index]),
        )
        yield start, close_index + 1, annotation
        position = close_index + 1


def parse_memories(text: str) -> List[MemoryAnnotation]:
    """
    Extract every well-formed memory annotation from text.

    Args:
        text: Raw model output

    Returns:
        List[MemoryAnnotation]: Annotations in order of appearance, with
        content and tags trimmed and at most three tags each. Markers with
        empty content are left out.

    Example:
        >>> parse_memories("Nice! [MEMORY: User likes pasta | food, preference, italian]")
        [MemoryAnnotation(content='User likes pasta', tags=['food', 'preference', 'italian'])]
    """
    if not text:
        return []

    return [annotation for _, _, annotation in _scan_markers(text) if annotation.content]


def strip_annotations(text: str) -> str:
    """
    Remove every annotation span from text shown to the user.

    Well-formed markers are removed whole; what is left of malformed ones
    is cut up to the first closing bracket.

    Args:
        text: Raw model output

    Returns:
        str: Output without [MEMORY:...] spans, trimmed
    """
    if not text:
        return ""

    pieces = []
    position = 0
    for start, end, _ in _scan_markers(text):
        pieces.append(text[position:start])
        position = end
    pieces.append(text[position:])

    return _ANNOTATION_SPAN.sub("", "".join(pieces)).strip()
