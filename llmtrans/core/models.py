"""
Core data models for llm-translate.

Plain dataclasses shared by the segmenter, the retry machinery, the backends
and the orchestrator. Requests are frozen: the orchestrator derives modified
copies (e.g. escalated context) instead of mutating them.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple


MAX_FLAGGED_FRAGMENTS = 5


@dataclass(frozen=True)
class GlossaryEntry:
    """A fixed source -> target term translation."""
    source: str
    target: str
    note: str = ""
    case_sensitive: bool = False
    context: str = ""

    def is_usable(self) -> bool:
        return bool(self.source) and bool(self.target)


@dataclass(frozen=True)
class TranslationRequest:
    """One document to translate, as submitted by the caller."""
    text: str
    source_lang: str = "auto"
    target_lang: str = "en"
    style: Optional[str] = None
    context: str = ""
    glossary: Tuple[GlossaryEntry, ...] = ()
    temperature: float = 0.3
    max_tokens: int = 4096
    preserve_format: bool = False
    strong_mode: bool = False
    strong_retries: int = 3

    def for_segment(self, text: str) -> BackendRequest:
        """Build the backend call for one segment of this document."""
        return BackendRequest(
            text=text,
            source_lang=self.source_lang,
            target_lang=self.target_lang,
            style=self.style,
            context=self.context,
            glossary=self.glossary,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            preserve_format=self.preserve_format,
        )


@dataclass(frozen=True)
class BackendRequest:
    """Request for a single backend generation call."""
    text: str
    source_lang: str
    target_lang: str
    style: Optional[str] = None
    context: str = ""
    glossary: Tuple[GlossaryEntry, ...] = ()
    temperature: float = 0.3
    max_tokens: int = 4096
    preserve_format: bool = False

    def with_context(self, context: str) -> BackendRequest:
        return replace(self, context=context)


@dataclass
class BackendResponse:
    """Response from one backend generation call."""
    text: str
    tokens_used: int = 0
    detected_lang: Optional[str] = None
    backend: str = ""
    model: str = ""
    latency: float = 0.0


@dataclass
class TranslationResult:
    """Assembled result for a whole document."""
    text: str
    detected_lang: Optional[str] = None
    tokens_used: int = 0
    segments: int = 0
    retries: int = 0  # strong-mode re-translations that were issued
    analysis: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Segment:
    """Ordered, contiguous slice of the input document."""
    index: int
    text: str

    def __len__(self) -> int:
        return len(self.text)


@dataclass
class ValidationOutcome:
    """Result of the source-language residue check."""
    passed: bool
    fragments: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.fragments = list(self.fragments[:MAX_FLAGGED_FRAGMENTS])

    def __bool__(self) -> bool:
        return self.passed


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and exponential backoff schedule for backend calls."""
    retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retry ``attempt`` (1-based)."""
        if attempt < 1:
            return 0.0
        return self.base_delay * self.multiplier ** (attempt - 1)

    def delays(self) -> List[float]:
        return [self.delay_for(k) for k in range(1, self.retries + 1)]
