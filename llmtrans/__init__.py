"""
llm-translate: LLM-backed text translation

Splits long documents into segments, translates them in order through a
configurable LLM backend, retries transient failures with backoff, and can
re-translate segments that still contain source-language text.

Usage:
    from llmtrans import TranslationPipeline, TranslationRequest, load_config

    pipeline = TranslationPipeline(load_config())
    result = pipeline.translate(TranslationRequest(text="Hello world", target_lang="fr"))
    print(result.text)
"""

__version__ = "1.0.0"
__author__ = "llm-translate contributors"
__license__ = "MIT"

from llmtrans.core.exceptions import (
    LLMTranslateError,
    ConfigurationError,
    UnknownBackendError,
    InvalidConfigurationError,
    UnsupportedProxySchemeError,
    BackendError,
    RetryExhaustedError,
    StrongValidationExhaustedError,
    CancellationRequestedError,
    GlossaryError,
    AnalysisError
)
from llmtrans.core.models import (
    GlossaryEntry,
    TranslationRequest,
    TranslationResult,
    BackendRequest,
    BackendResponse,
    Segment,
    RetryPolicy
)
from llmtrans.core.pipeline import TranslationPipeline, translate_text
from llmtrans.translation.executor import CancellationToken
from llmtrans.translation.registry import BackendRegistry, default_registry, register_backend
from llmtrans.utils.config_loader import AppConfig, load_config

__all__ = [
    "__version__",
    "LLMTranslateError",
    "ConfigurationError",
    "UnknownBackendError",
    "InvalidConfigurationError",
    "UnsupportedProxySchemeError",
    "BackendError",
    "RetryExhaustedError",
    "StrongValidationExhaustedError",
    "CancellationRequestedError",
    "GlossaryError",
    "AnalysisError",
    "GlossaryEntry",
    "TranslationRequest",
    "TranslationResult",
    "BackendRequest",
    "BackendResponse",
    "Segment",
    "RetryPolicy",
    "TranslationPipeline",
    "translate_text",
    "CancellationToken",
    "BackendRegistry",
    "default_registry",
    "register_backend",
    "AppConfig",
    "load_config",
]
