"""Unit tests for core models."""

from dataclasses import FrozenInstanceError

import pytest

from llmtrans.core.exceptions import BackendError, RetryExhaustedError, UnknownBackendError
from llmtrans.core.models import (
    GlossaryEntry,
    RetryPolicy,
    Segment,
    TranslationRequest,
    ValidationOutcome
)


def test_request_for_segment():
    """Test that segment requests carry the document options."""
    glossary = (GlossaryEntry("world", "monde"),)
    request = TranslationRequest(
        text="whole document", source_lang="en", target_lang="fr", style="formal",
        context="Docs", glossary=glossary, temperature=0.1, max_tokens=100
    )

    segment_request = request.for_segment("one part")

    assert segment_request.text == "one part"
    assert (segment_request.source_lang, segment_request.target_lang) == ("en", "fr")
    assert segment_request.glossary == glossary
    assert segment_request.max_tokens == 100


def test_request_is_frozen():
    """Test that requests cannot be mutated in place."""
    request = TranslationRequest(text="Hello")
    with pytest.raises(FrozenInstanceError):
        request.text = "Bye"


def test_with_context_returns_copy():
    """Test that escalation builds a new request."""
    original = TranslationRequest(text="Hello", context="UI").for_segment("Hello")
    escalated = original.with_context("retry")

    assert escalated.context == "retry"
    assert original.context == "UI"


def test_retry_policy_delays():
    """Test the exponential backoff schedule."""
    assert RetryPolicy(retries=4, base_delay=0.5).delays() == [0.5, 1.0, 2.0, 4.0]
    assert RetryPolicy().delay_for(0) == 0.0


def test_validation_outcome_caps_fragments():
    """Test that only the first few fragments are kept."""
    outcome = ValidationOutcome(passed=False, fragments=[str(i) for i in range(8)])

    assert outcome.fragments == ["0", "1", "2", "3", "4"]
    assert not outcome


def test_glossary_entry_usable():
    """Test glossary entry completeness."""
    assert GlossaryEntry("a", "b").is_usable()
    assert not GlossaryEntry("a", "").is_usable()


def test_segment_length():
    """Test that segment length is its character count."""
    assert len(Segment(index=0, text="héllo")) == 5


def test_error_serialization():
    """Test error to_dict for reporting."""
    cause = BackendError("openai", "unexpected status code: 503", status_code=503)
    error = RetryExhaustedError(3, cause)

    data = error.to_dict()

    assert data["error_type"] == "RetryExhaustedError"
    assert data["details"]["backend"] == "openai"
    assert data["recoverable"] is True
    assert "503" in str(error)


def test_unknown_backend_suggestion():
    """Test that unknown names list the registered backends."""
    error = UnknownBackendError("nope", ["openai", "anthropic"])
    assert error.suggestion == "Valid values for default_provider: anthropic, openai"
