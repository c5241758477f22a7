"""
Text segmentation for long documents.

Splits a document into chunks no longer than a character budget, preferring
paragraph boundaries, then sentence boundaries, then whitespace between
words. Chunk order always follows the document.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

from llmtrans.core.models import Segment


PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_TERMINATORS = ".!?"


@dataclass
class SegmenterConfig:
    """Segmenter configuration."""
    chunk_size: int = 3000
    paragraph_separator: str = PARAGRAPH_SEPARATOR


class TextSegmenter:
    """Paragraph -> sentence -> word splitter.

    Chunks are accumulated greedily: a unit is appended to the running buffer
    while buffer + separator + unit fits the budget, otherwise the buffer is
    flushed and the unit starts a new one. A unit that alone exceeds the
    budget is split at the next finer granularity. Single words are never
    split, so a word longer than the budget becomes an oversized chunk.

    Example:
        >>> segmenter = TextSegmenter(SegmenterConfig(chunk_size=3000))
        >>> segments = segmenter.split(document_text)
    """

    def __init__(self, config: SegmenterConfig = None):
        self.config = config or SegmenterConfig()
        if self.config.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

    def split(self, text: str) -> List[Segment]:
        return [Segment(index=i, text=chunk) for i, chunk in enumerate(self.split_text(text))]

    def split_text(self, text: str) -> List[str]:
        budget = self.config.chunk_size
        if not text.strip():
            return []
        if len(text) <= budget:
            return [text.strip()]

        buffer = _ChunkBuffer(budget)
        separator = self.config.paragraph_separator

        for paragraph in text.split(separator):
            if not buffer.fits(paragraph, len(separator)):
                buffer.flush()
                if len(paragraph) > budget:
                    self._split_paragraph(paragraph, buffer)
                else:
                    buffer.start(paragraph)
            else:
                buffer.append(paragraph, separator)

        buffer.flush()
        return buffer.chunks

    def _split_paragraph(self, paragraph: str, buffer: _ChunkBuffer) -> None:
        for sentence in split_into_sentences(paragraph):
            if not buffer.fits(sentence, 1):
                buffer.flush()
                if len(sentence) > buffer.budget:
                    self._split_sentence(sentence, buffer)
                else:
                    buffer.start(sentence)
            else:
                buffer.append(sentence, " ")

    @staticmethod
    def _split_sentence(sentence: str, buffer: _ChunkBuffer) -> None:
        for word in sentence.split():
            if not buffer.fits(word, 1):
                buffer.flush()
                buffer.start(word)
            else:
                buffer.append(word, " ")


class _ChunkBuffer:
    """Running chunk plus the list of flushed chunks."""

    def __init__(self, budget: int):
        self.budget = budget
        self.current = ""
        self.chunks: List[str] = []

    def fits(self, unit: str, separator_len: int) -> bool:
        return len(self.current) + len(unit) + separator_len <= self.budget

    def append(self, unit: str, separator: str) -> None:
        if self.current:
            self.current += separator
        self.current += unit

    def start(self, unit: str) -> None:
        self.current = unit

    def flush(self) -> None:
        chunk = self.current.strip()
        if chunk:
            self.chunks.append(chunk)
        self.current = ""


def split_into_sentences(text: str) -> List[str]:
    """Split on ``.``, ``!`` or ``?`` immediately followed by a space."""
    sentences = []
    start = 0
    for i, char in enumerate(text):
        if char in SENTENCE_TERMINATORS and i + 1 < len(text) and text[i + 1] == " ":
            sentences.append(text[start:i + 1].strip())
            start = i + 1

    tail = text[start:].strip()
    if tail:
        sentences.append(tail)
    return [s for s in sentences if s]


def split_into_chunks(text: str, chunk_size: int) -> List[str]:
    """Convenience wrapper returning plain chunk strings."""
    return TextSegmenter(SegmenterConfig(chunk_size=chunk_size)).split_text(text)


def segment_text(text: str, chunk_size: int) -> List[Segment]:
    return TextSegmenter(SegmenterConfig(chunk_size=chunk_size)).split(text)
