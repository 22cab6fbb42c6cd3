"""
Text segmentation for length-limited chat messages.

Discord rejects messages over 2000 characters, so a model response has to be
delivered as an ordered list of segments. The segmenter wraps greedily on word
boundaries, but when a segment would overflow and already spans more than one
paragraph, it cuts at the last newline instead so paragraphs stay intact.

Example:
    >>> segment("Hello world.\\n\\nThis is a new paragraph.", 20)
    ['Hello world.', 'This is a new', 'paragraph.']
"""

from __future__ import annotations

import re

DISCORD_MESSAGE_LIMIT = 2000

# A run of non-whitespace plus the whitespace that follows it
_WORD_RE = re.compile(r"\S*(?:\s+|$)")


def normalize(text: str) -> str:
    """Collapse CRLF/CR line endings to LF and strip outer whitespace."""
    return text.replace("\r\n", "\n").replace("\r", "\n").strip()


def segment(text: str, max_length: int = DISCORD_MESSAGE_LIMIT) -> list[str]:
    """
    Split text into trimmed, non-empty segments of at most max_length characters.

    Args:
        text: Arbitrary text, typically a full model response
        max_length: Upper bound on each segment's length (must be >= 1)

    Returns:
        Segments in delivery order

    Raises:
        ValueError: If max_length is less than 1
    """
    if max_length < 1:
        raise ValueError(f"max_length must be at least 1, got {max_length}")

    text = normalize(text)
    segments: list[str] = []
    current = ""

    def flush(part: str) -> None:
        part = part.strip()
        if part:
            segments.append(part)

    pos = 0
    while pos < len(text):
        word = _WORD_RE.match(text, pos).group(0)
        if not word:
            break
        suffix = ""

        if len(current) + len(word) > max_length:
            if "\n" in current:
                # Emit everything up to the last paragraph break, then retry
                # the same word against the shorter remainder.
                head, _, tail = current.rpartition("\n")
                flush(head)
                current = tail
                continue

            flush(current)
            current = ""

            if len(word) > max_length:
                word = word[:max_length]
                if max_length > 1 and not any(ch.isspace() for ch in word):
                    word = word[:-1]
                    suffix = "-"

        pos += len(word)
        current += word + suffix

    flush(current)
    return segments
