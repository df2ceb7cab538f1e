"""
Line-oriented text chunking with word-count targets and overlap.

Passages close when their running word count reaches the target; the next
passage is seeded with trailing lines of the previous one until the overlap
word budget is met. Line numbers are 1-based, inclusive, and always refer to
the lines of the original text.
"""

import re

from vaultrecall.models.passage import Passage

MAX_LINE_CHARS = 2000
DEFAULT_TARGET_WORDS = 400
DEFAULT_OVERLAP_WORDS = 80

_WHITESPACE_RE = re.compile(r"\s+")


def count_words(line: str) -> int:
    """Whitespace-delimited word count (empty tokens ignored)."""
    return sum(1 for token in _WHITESPACE_RE.split(line) if token)


def _split_lines(text: str) -> list[tuple[int, str]]:
    """
    Split text into (line_number, segment) pairs.

    Lines longer than MAX_LINE_CHARS become several segments sharing the
    same line number; segments never span two lines.
    """
    segments: list[tuple[int, str]] = []
    for number, line in enumerate(text.split("\n"), start=1):
        if len(line) <= MAX_LINE_CHARS:
            segments.append((number, line))
            continue
        for offset in range(0, len(line), MAX_LINE_CHARS):
            segments.append((number, line[offset : offset + MAX_LINE_CHARS]))
    return segments


def chunk_text(
    text: str,
    target_words: int = DEFAULT_TARGET_WORDS,
    overlap_words: int = DEFAULT_OVERLAP_WORDS,
) -> list[Passage]:
    """
    Split text into overlapping passages.

    Args:
        text: Source text
        target_words: Word count at which a passage is closed
        overlap_words: Words carried from the end of a closed passage into
            the next one (0 disables overlap)

    Returns:
        Ordered passages with text and line range set; id, source_id and
        content_hash are left empty for the indexing pipeline. Empty and
        whitespace-only input yields no passages.
    """
    segments = _split_lines(text)
    passages: list[Passage] = []

    current: list[tuple[int, str]] = []
    current_words = 0
    last = len(segments) - 1

    for i, segment in enumerate(segments):
        current.append(segment)
        current_words += count_words(segment[1])

        if current_words < target_words and i != last:
            continue

        body = "\n".join(line for _, line in current)
        if body.strip():
            passages.append(
                Passage(start_line=current[0][0], end_line=current[-1][0], text=body)
            )

        if i < last and overlap_words > 0:
            carried: list[tuple[int, str]] = []
            carried_words = 0
            for seg in reversed(current):
                carried.insert(0, seg)
                carried_words += count_words(seg[1])
                if carried_words >= overlap_words:
                    break
            current = carried
            current_words = carried_words
        else:
            current = []
            current_words = 0

    return passages
