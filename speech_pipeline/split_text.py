from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_CHUNK_SIZE",
    "TextChunk",
    "chunk_text",
    "split_into_sentences",
    "split_long_sentence",
    "hard_split_by_length",
]

# OpenAI speech input is capped at 4096 characters; keep some headroom.
MAX_CHUNK_SIZE = 4000

SENTENCE_BOUNDARY_PATTERN = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class TextChunk:
    index: int
    content: str

    @property
    def length(self) -> int:
        return len(self.content)

    def preview(self, limit: int = 50, edge: int = 20) -> str:
        """
        Short form of the content for progress output: head and tail joined by "...".
        """
        if len(self.content) <= limit:
            return self.content
        return f"{self.content[:edge]}...{self.content[-edge:]}"


def chunk_text(text: str, max_chars: int = MAX_CHUNK_SIZE) -> List[TextChunk]:
    """
    Partition ``text`` into ordered, 1-indexed chunks of at most ``max_chars`` characters.

    Sentences are packed greedily into chunks. A sentence that does not fit on its own
    is packed word by word, and a single word longer than ``max_chars`` is sliced at the
    character limit. Whitespace between packed pieces is normalised to a single space.
    """
    if max_chars < 1:
        raise ValueError("max_chars must be positive.")
    stripped = (text or "").strip()
    if not stripped:
        raise ValueError("Cannot chunk empty text.")

    if len(stripped) <= max_chars:
        return [TextChunk(index=1, content=stripped)]

    pieces: List[str] = []
    buffer = ""
    for sentence in split_into_sentences(stripped):
        if len(sentence) > max_chars:
            if buffer:
                pieces.append(buffer)
                buffer = ""
            fragments = split_long_sentence(sentence, max_chars=max_chars)
            # The word-packed tail stays open so following sentences can join it.
            pieces.extend(fragments[:-1])
            buffer = fragments[-1] if fragments else ""
            continue

        candidate = f"{buffer} {sentence}" if buffer else sentence
        if len(candidate) > max_chars:
            pieces.append(buffer)
            buffer = sentence
        else:
            buffer = candidate

    if buffer:
        pieces.append(buffer)

    chunks = [
        TextChunk(index=index, content=piece)
        for index, piece in enumerate((p.strip() for p in pieces if p.strip()), start=1)
    ]
    logger.debug("Split %d characters into %d chunks (max %d).", len(stripped), len(chunks), max_chars)
    return chunks


def split_into_sentences(text: str) -> List[str]:
    """
    Break text after ``.``, ``!`` or ``?`` followed by whitespace.
    """
    text = (text or "").strip()
    if not text:
        return []
    return [part.strip() for part in SENTENCE_BOUNDARY_PATTERN.split(text) if part.strip()]


def split_long_sentence(sentence: str, max_chars: int = MAX_CHUNK_SIZE) -> List[str]:
    """
    Pack the words of ``sentence`` into fragments of at most ``max_chars`` characters.

    Words that alone exceed the limit are sliced with ``hard_split_by_length``; the last
    slice stays open so the next word can be appended to it.
    """
    sentence = (sentence or "").strip()
    if not sentence:
        return []

    if len(sentence) <= max_chars:
        return [sentence]

    fragments: List[str] = []
    current = ""
    for word in sentence.split():
        if len(word) > max_chars:
            if current:
                fragments.append(current)
            slices = hard_split_by_length(word, max_chars=max_chars)
            fragments.extend(slices[:-1])
            current = slices[-1]
            continue

        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_chars:
            current = candidate
        else:
            fragments.append(current)
            current = word

    if current:
        fragments.append(current)

    return fragments


def hard_split_by_length(text: str, max_chars: int = MAX_CHUNK_SIZE) -> List[str]:
    """
    Slice ``text`` into consecutive pieces of exactly ``max_chars`` characters (the last may be shorter).
    """
    if not text:
        return []
    return [text[start : start + max_chars] for start in range(0, len(text), max_chars)]
