# -*- coding: utf-8 -*-
"""
Source-language residue validator.

Heuristic check used by strong mode: after stripping text that is allowed to
stay untranslated (acronyms, code, URLs, brand names, configured terms), does
the output still read like the source language?

Only English sources are detected; every other source language passes.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Pattern

from llmtrans.core.models import ValidationOutcome, MAX_FLAGGED_FRAGMENTS
from llmtrans.utils.config_loader import StrongValidationConfig

logger = logging.getLogger(__name__)


MIN_VALIDATED_LENGTH = 10
COMMON_WORD_THRESHOLD = 3

# Most frequent English words; used to detect English sentences
DETECTION_WORDS = [
    "the", "be", "to", "of", "and", "a", "in", "that", "have", "I",
    "it", "for", "not", "on", "with", "he", "as", "you", "do", "at",
    "this", "but", "his", "by", "from", "they", "we", "say", "her", "she",
    "or", "an", "will", "my", "one", "all", "would", "there", "their",
    "what", "so", "up", "out", "if", "about", "who", "get", "which", "go",
]

# Wider list used when reporting individual flagged words
ENGLISH_WORDS = frozenset(w.lower() for w in DETECTION_WORDS) | frozenset([
    "me", "when", "make", "can", "like", "time", "no", "just", "him", "know",
    "take", "people", "into", "year", "your", "good", "some", "could", "them",
    "see", "other", "than", "then", "now", "look", "only", "come", "its",
    "over", "think", "also", "back", "after", "use", "two", "how", "our", "work",
])

_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"^\d+$")
_ACRONYM = re.compile(r"^[A-Z]{2,}$")


class SourceLanguageValidator:
    """
    Flags translations that still contain source-language text.

    Implements the validation predicate consumed by the strong-mode retry
    loop: ``check(text, source_lang, target_lang) -> ValidationOutcome``.
    """

    def __init__(self, config: Optional[StrongValidationConfig] = None, enabled: Optional[bool] = None):
        self.config = config or StrongValidationConfig(enabled=True)
        self.enabled = self.config.enabled if enabled is None else enabled
        self._patterns = self._compile(self.config.allowed_patterns)

    @staticmethod
    def _compile(patterns: List[str]) -> List[Pattern]:
        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                logger.warning(f"Ignoring invalid allowed pattern {pattern!r}: {e}")
        return compiled

    def check(self, text: str, source_lang: str, target_lang: str) -> ValidationOutcome:
        if not self.enabled:
            return ValidationOutcome(passed=True)

        cleaned = self.clean_text(text)
        if len(cleaned.strip()) < MIN_VALIDATED_LENGTH:
            return ValidationOutcome(passed=True)

        if source_lang == "en" and self.contains_english_text(cleaned):
            fragments = self.extract_fragments(cleaned)
            # only short common words left: nothing to ask the model to fix
            if fragments:
                return ValidationOutcome(passed=False, fragments=fragments)

        return ValidationOutcome(passed=True)

    __call__ = check

    def clean_text(self, text: str) -> str:
        """Remove allowed patterns and terms, collapse whitespace."""
        result = text
        for pattern in self._patterns:
            result = pattern.sub(" ", result)
        for term in self.config.allowed_terms:
            result = result.replace(term, " ")
        return _WHITESPACE.sub(" ", result).strip()

    @staticmethod
    def contains_english_text(text: str) -> bool:
        lowered = text.lower()
        count = 0
        for word in DETECTION_WORDS:
            word = word.lower()
            if (f" {word} " in lowered
                    or lowered.startswith(word + " ")
                    or lowered.endswith(" " + word)):
                count += 1
            if count > COMMON_WORD_THRESHOLD:
                return True
        return False

    def extract_fragments(self, cleaned: str) -> List[str]:
        fragments = []
        for word in cleaned.split():
            if len(word) > 3 and not self._is_allowed_word(word) and word.lower() in ENGLISH_WORDS:
                fragments.append(word)
            if len(fragments) == MAX_FLAGGED_FRAGMENTS:
                break
        return fragments

    def _is_allowed_word(self, word: str) -> bool:
        if any(word.lower() == term.lower() for term in self.config.allowed_terms):
            return True
        return bool(_DIGITS.match(word) or _ACRONYM.match(word))
