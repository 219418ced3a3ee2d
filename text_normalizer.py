"""
Text cleanup and evidence helpers.
"""

import re
from typing import Optional

SENTENCE_TERMINATORS = ".?!;\n"

_SMART_SINGLE = re.compile("[\u2018\u2019]")
_SMART_DOUBLE = re.compile("[\u201c\u201d]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Straighten smart quotes, collapse whitespace runs and trim."""
    if not text:
        return ""
    text = _SMART_SINGLE.sub("'", text)
    text = _SMART_DOUBLE.sub('"', text)
    return _WHITESPACE.sub(" ", text).strip()


def shortest_sentence_containing(text: Optional[str], start: int, end: int) -> str:
    """
    Return the sentence-like span of text around [start, end).

    Scans backward from start to the nearest terminator (or text start) and
    forward from end up to and including the next terminator (or text end).
    No special handling for abbreviations, decimals or quoted punctuation.

    Args:
        text: Source text
        start: Character offset where the span begins
        end: Character offset where the span ends (exclusive)

    Returns:
        The trimmed sentence, or "" for empty text
    """
    if not text:
        return ""

    length = len(text)
    start = max(0, min(start, length))
    end = max(start, min(end, length))

    sentence_start = start
    while sentence_start > 0 and text[sentence_start - 1] not in SENTENCE_TERMINATORS:
        sentence_start -= 1

    sentence_end = end
    while sentence_end < length:
        char = text[sentence_end]
        sentence_end += 1
        if char in SENTENCE_TERMINATORS:
            break

    return text[sentence_start:sentence_end].strip()


def format_evidence(sentence: str, match_text: str, tag: str = "em") -> str:
    """Wrap each case-insensitive occurrence of match_text in <tag>...</tag>."""
    if not sentence or not match_text:
        return sentence
    rx = re.compile(re.escape(match_text), re.IGNORECASE)
    return rx.sub(lambda m: f"<{tag}>{m.group(0)}</{tag}>", sentence)
