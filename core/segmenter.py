"""
Script segmentation.

Splits a narration script into short, ordered, non-empty chunks that each fit
a single spoken clip. Pure and deterministic.
"""

import re
from typing import List


SENTENCE_TERMINATORS = "。！？.!?"
CLAUSE_SEPARATORS = "，,、;；"
MAX_SEGMENT_CHARS = 30


def _split_keeping_delimiters(text: str, delimiters: str) -> List[str]:
    """Split on any of the delimiters, keeping each delimiter on the preceding part."""
    parts = re.split(f"([{re.escape(delimiters)}])", text)
    pieces: List[str] = []
    for i, part in enumerate(parts):
        if i % 2 == 0:
            pieces.append(part)
        else:
            pieces[-1] += part
    return pieces


def _force_split(text: str, size: int) -> List[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def split_script(text: str, max_chars: int = MAX_SEGMENT_CHARS) -> List[str]:
    """
    Split a script into segments of at most max_chars characters.

    Sentences are cut at terminal punctuation (kept attached). Sentences that
    are too long are cut again at clause punctuation and the clauses greedily
    merged back up to the bound. A clause that alone exceeds the bound has no
    usable punctuation and is cut into fixed-size chunks.

    Args:
        text: Narration script
        max_chars: Upper bound for one segment

    Returns:
        Ordered list of trimmed, non-empty segments
    """
    segments: List[str] = []

    def emit(chunk: str) -> None:
        chunk = chunk.strip()
        if chunk:
            segments.append(chunk)

    for sentence in _split_keeping_delimiters(text or "", SENTENCE_TERMINATORS):
        sentence = sentence.strip()
        if not sentence:
            continue

        if len(sentence) <= max_chars:
            emit(sentence)
            continue

        buffer = ""
        for clause in _split_keeping_delimiters(sentence, CLAUSE_SEPARATORS):
            clause = clause.strip()
            if not clause:
                continue

            if len(buffer) + len(clause) <= max_chars:
                buffer += clause
                continue

            emit(buffer)
            buffer = clause

            if len(buffer) > max_chars:
                chunks = _force_split(buffer, max_chars)
                for chunk in chunks[:-1]:
                    emit(chunk)
                # The remainder keeps accumulating with the next clauses
                buffer = chunks[-1]

        emit(buffer)

    return segments
