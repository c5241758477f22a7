"""
Post-translation document analysis.

Each analysis is a single backend call with a fixed instruction prompt and a
one-line (or two-line) structured reply that is parsed with a regular
expression. Results are collected into a flat mapping that is merged into
the output document's frontmatter.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from llmtrans.core.exceptions import AnalysisError, CancellationRequestedError, LLMTranslateError
from llmtrans.translation.base import TranslationBackend
from llmtrans.translation.executor import CancellationToken, ResilientExecutor
from llmtrans.utils.config_loader import Settings

logger = logging.getLogger(__name__)


SENTIMENT_PROMPT = """Analyze the sentiment of the following text. Respond ONLY with a single line in format:
SENTIMENT: <positive|negative|neutral> (<score from -1.0 to 1.0>)

Text to analyze:"""

TAGS_PROMPT_TEMPLATE = """Extract the {count} most important keywords/tags from the following text.
Respond ONLY with a single line in format:
TAGS: tag1, tag2, tag3, ...

Use lowercase, single words or short phrases. No hashtags.

Text to analyze:"""

CLASSIFY_PROMPT = """Classify the following text into categories. Respond ONLY in this exact format:
TOPICS: <comma-separated list from: politics, economics, technology, medicine, incidents>
SCOPE: <comma-separated list from: regional, international>
TYPE: <comma-separated list from: corporate, regulatory, macro>

Rules:
- Select one or more values for each category
- Use only the exact values listed above
- If category doesn't apply, use "none"

Text to classify:"""

EMOTIONS_PROMPT = """Analyze the emotional tone of the following text. Respond ONLY in this exact format:
EMOTIONS: <comma-separated list of detected emotions with scores>

Available emotions and format:
fear:<0.0-1.0>, anger:<0.0-1.0>, hope:<0.0-1.0>, uncertainty:<0.0-1.0>, optimism:<0.0-1.0>, panic:<0.0-1.0>

Rules:
- Include only emotions with score > 0.1
- Score represents intensity (0.0 = absent, 1.0 = very strong)
- List emotions in descending order by score

Example response:
EMOTIONS: fear:0.8, uncertainty:0.6, panic:0.3

Text to analyze:"""

FACTUALITY_PROMPT = """Analyze the factuality and speculativeness of the following text. Respond ONLY in this exact format:
FACTUALITY: <type> (<confidence 0.0-1.0>)
EVIDENCE: <comma-separated list of evidence types found>

Types (choose one):
- confirmed: verified facts with clear sources or official data
- rumors: unverified information, hearsay, "sources say"
- forecasts: predictions, projections, future expectations
- unsourced: claims without attribution or evidence

Evidence types to detect:
- official_source, statistics, quotes, documents, expert_opinion, anonymous_source, speculation, prediction

Example response:
FACTUALITY: rumors (0.7)
EVIDENCE: anonymous_source, speculation

Text to analyze:"""

_SENTIMENT = re.compile(r"SENTIMENT:\s*(positive|negative|neutral)\s*\(([+-]?\d*\.?\d+)\)", re.IGNORECASE)
_TAGS = re.compile(r"TAGS:\s*(.+)", re.IGNORECASE)
_TOPICS = re.compile(r"TOPICS:\s*(.+)", re.IGNORECASE)
_SCOPE = re.compile(r"SCOPE:\s*(.+)", re.IGNORECASE)
_TYPE = re.compile(r"TYPE:\s*(.+)", re.IGNORECASE)
_EMOTIONS = re.compile(r"EMOTIONS:\s*(.+)", re.IGNORECASE)
_EMOTION_SCORE = re.compile(r"(\w+):([0-9.]+)")
_FACTUALITY = re.compile(r"FACTUALITY:\s*(\w+)\s*\(([0-9.]+)\)", re.IGNORECASE)
_EVIDENCE = re.compile(r"EVIDENCE:\s*(.+)", re.IGNORECASE)


@dataclass
class Sentiment:
    label: str
    score: float
    confidence: float


@dataclass
class Classification:
    topics: List[str] = field(default_factory=list)
    scope: List[str] = field(default_factory=list)
    news_type: List[str] = field(default_factory=list)


@dataclass
class Factuality:
    kind: str
    confidence: float
    evidence: List[str] = field(default_factory=list)


def _to_float(value: str, analysis: str, reply: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise AnalysisError(analysis, f"invalid score: {value}", reply) from e


def _comma_separated(value: str) -> List[str]:
    """Lowercased, trimmed items; empty items and ``none`` are dropped."""
    items = (item.strip().lower() for item in value.split(","))
    return [item for item in items if item and item != "none"]


def parse_sentiment(reply: str) -> Sentiment:
    """
    Parse ``SENTIMENT: <label> (<score>)``.

    Confidence grows with the score's distance from zero: 0.5 for a score of
    0, 1.0 for a score of +/-1.
    """
    reply = reply.strip()
    match = _SENTIMENT.search(reply)
    if not match:
        raise AnalysisError("sentiment", f"invalid sentiment response format: {reply}", reply)

    score = _to_float(match.group(2), "sentiment", reply)
    return Sentiment(
        label=match.group(1).lower(),
        score=score,
        confidence=1.0 - (1.0 - abs(score)) * 0.5,
    )


def parse_tags(reply: str) -> List[str]:
    reply = reply.strip()
    match = _TAGS.search(reply)
    if not match:
        raise AnalysisError("tags", f"invalid tags response format: {reply}", reply)

    tags = [tag.strip() for tag in match.group(1).split(",")]
    tags = [tag for tag in tags if tag]
    if not tags:
        raise AnalysisError("tags", "no tags found in response", reply)
    return tags


def parse_classification(reply: str) -> Classification:
    """Parse the TOPICS / SCOPE / TYPE lines; at least one must carry a value."""
    reply = reply.strip()
    result = Classification()
    for pattern, attr in ((_TOPICS, "topics"), (_SCOPE, "scope"), (_TYPE, "news_type")):
        match = pattern.search(reply)
        if match:
            setattr(result, attr, _comma_separated(match.group(1)))

    if not (result.topics or result.scope or result.news_type):
        raise AnalysisError("classification", f"invalid classification response format: {reply}", reply)
    return result


def parse_emotions(reply: str) -> Dict[str, float]:
    """Parse ``EMOTIONS: name:score, ...``; zero scores are dropped."""
    reply = reply.strip()
    match = _EMOTIONS.search(reply)
    if not match:
        raise AnalysisError("emotions", f"invalid emotions response format: {reply}", reply)

    emotions = {}
    for name, value in _EMOTION_SCORE.findall(match.group(1)):
        try:
            score = float(value)
        except ValueError:
            continue
        if score > 0:
            emotions[name.lower()] = score

    if not emotions:
        raise AnalysisError("emotions", "no emotions found in response", reply)
    return emotions


def parse_factuality(reply: str) -> Factuality:
    reply = reply.strip()
    match = _FACTUALITY.search(reply)
    if not match:
        raise AnalysisError("factuality", f"invalid factuality response format: {reply}", reply)

    evidence = _EVIDENCE.search(reply)
    return Factuality(
        kind=match.group(1).lower(),
        confidence=_to_float(match.group(2), "factuality", reply),
        evidence=_comma_separated(evidence.group(1)) if evidence else [],
    )


@dataclass(frozen=True)
class AnalysisStep:
    """One analysis call: prompt, generation parameters, and reply -> frontmatter fields."""
    name: str
    prompt: str
    temperature: float
    max_tokens: int
    to_fields: Callable[[str], Dict[str, Any]]


def _sentiment_fields(reply: str) -> Dict[str, Any]:
    sentiment = parse_sentiment(reply)
    return {"sentiment": sentiment.label, "sentiment_score": sentiment.score}


def _tags_fields(reply: str) -> Dict[str, Any]:
    return {"tags": parse_tags(reply)}


def _classification_fields(reply: str) -> Dict[str, Any]:
    result = parse_classification(reply)
    fields = {"topics": result.topics, "scope": result.scope, "news_type": result.news_type}
    return {key: value for key, value in fields.items() if value}


def _emotions_fields(reply: str) -> Dict[str, Any]:
    return {"emotions": parse_emotions(reply)}


def _factuality_fields(reply: str) -> Dict[str, Any]:
    result = parse_factuality(reply)
    fields: Dict[str, Any] = {"factuality": result.kind, "factuality_confidence": result.confidence}
    if result.evidence:
        fields["factuality_evidence"] = result.evidence
    return fields


def analysis_steps(settings: Settings) -> List[AnalysisStep]:
    """Steps enabled by ``settings``, in the order their fields are written."""
    steps = []
    if settings.sentiment:
        steps.append(AnalysisStep("sentiment", SENTIMENT_PROMPT, 0.1, 100, _sentiment_fields))
    if int(settings.tags_count) > 0:
        prompt = TAGS_PROMPT_TEMPLATE.format(count=int(settings.tags_count))
        steps.append(AnalysisStep("tags", prompt, 0.3, 200, _tags_fields))
    if settings.classify:
        steps.append(AnalysisStep("classification", CLASSIFY_PROMPT, 0.1, 200, _classification_fields))
    if settings.emotions:
        steps.append(AnalysisStep("emotions", EMOTIONS_PROMPT, 0.1, 200, _emotions_fields))
    if settings.factuality:
        steps.append(AnalysisStep("factuality", FACTUALITY_PROMPT, 0.1, 200, _factuality_fields))
    return steps


class DocumentAnalyzer:
    """
    Runs the enabled analyses over a translated document.

    Backend calls go through the same ResilientExecutor as translation, so
    transient failures are retried. A step that still fails, or whose reply
    cannot be parsed, is logged and left out of the result; cancellation is
    the only error that propagates.
    """

    def __init__(self, backend: TranslationBackend, executor: ResilientExecutor, steps: List[AnalysisStep]):
        self.backend = backend
        self.executor = executor
        self.steps = steps

    def run(self, text: str, cancel_token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        token = cancel_token or CancellationToken()
        fields: Dict[str, Any] = {}

        for step in self.steps:
            token.raise_if_cancelled()
            logger.info(f"Running {step.name} analysis...")
            try:
                response = self.executor.execute(
                    lambda: self.backend.complete(step.prompt, text, step.temperature, step.max_tokens),
                    token
                )
                fields.update(step.to_fields(response.text))
            except CancellationRequestedError:
                raise
            except LLMTranslateError as e:
                logger.warning(f"{step.name.capitalize()} analysis failed: {e}")

        return fields
