"""
Main translation pipeline for llm-translate.

This module orchestrates one document translation: transport selection,
backend resolution, segmentation, resilient per-chunk execution, optional
strong validation, and reassembly. It also runs the optional
post-translation analyses over a finished translation.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from llmtrans.core.exceptions import LLMTranslateError
from llmtrans.core.models import TranslationRequest, TranslationResult, RetryPolicy
from llmtrans.core.validator import SourceLanguageValidator
from llmtrans.network.transport import build_http_client
from llmtrans.translation.analysis import DocumentAnalyzer, analysis_steps
from llmtrans.translation.executor import CancellationToken, ResilientExecutor
from llmtrans.translation.registry import BackendRegistry, default_registry
from llmtrans.translation.segmenter import TextSegmenter, SegmenterConfig
from llmtrans.translation.strong import StrongValidationLoop, ValidationPredicate
from llmtrans.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

CHUNK_SEPARATOR = "\n\n"
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 1.0


class TranslationPipeline:
    """
    Translates one document at a time.

    The pipeline keeps no per-document state on the instance, so one
    pipeline may serve concurrent calls for different documents. Chunks of a
    single document are always translated sequentially and in order.

    Example:
        >>> pipeline = TranslationPipeline(load_config())
        >>> result = pipeline.translate(TranslationRequest(text="Hello world", target_lang="fr"))
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        registry: Optional[BackendRegistry] = None,
        validator: Optional[ValidationPredicate] = None,
        sleeper: Optional[Callable] = None,
        progress_callback: Optional[Callable[[float, str], None]] = None
    ):
        """
        Args:
            config: Application configuration (defaults when omitted)
            registry: Backend registry; the process-wide one by default
            validator: Strong-mode predicate; SourceLanguageValidator by default
            sleeper: Backoff wait override passed to the executor
            progress_callback: Called with (fraction_done, message) per chunk
        """
        self.config = config or AppConfig()
        if registry is None:
            # importing the package registers the built-in backends
            import llmtrans.translation.backends  # noqa: F401
            registry = default_registry
        self.registry = registry
        self.validator = validator or SourceLanguageValidator(self.config.strong_validation, enabled=True)
        self.sleeper = sleeper
        self.progress_callback = progress_callback

    def retry_policy(self) -> RetryPolicy:
        settings = self.config.settings
        return RetryPolicy(
            retries=int(settings.retry_count) or DEFAULT_RETRY_COUNT,
            base_delay=float(settings.retry_delay) or DEFAULT_RETRY_DELAY,
        )

    def _report(self, fraction: float, message: str) -> None:
        if self.progress_callback:
            self.progress_callback(fraction, message)

    def _build_http_client(self, token: CancellationToken):
        # in-flight requests never outlive the token's deadline
        return build_http_client(
            self.config.effective_proxy(self.config.default_backend),
            timeout=float(self.config.settings.timeout),
            remaining=token.remaining
        )

    def _resolve_backend(self, http_client):
        backend_name = self.config.default_backend
        backend = self.registry.resolve(
            backend_name,
            self.config.backend_config(backend_name),
            http_client,
            self.config.prompts
        )
        logger.debug(f"Provider: {backend.name}, Model: {backend.model}")
        return backend

    def translate(
        self,
        request: TranslationRequest,
        cancel_token: Optional[CancellationToken] = None
    ) -> TranslationResult:
        """
        Translate a whole document.

        Returns:
            TranslationResult with the chunks joined by a blank line

        Raises:
            LLMTranslateError: any unrecoverable failure; no partial text is
                returned in that case
        """
        if not request.text.strip():
            raise ValueError("input is empty")

        token = cancel_token or CancellationToken()
        settings = self.config.settings

        http_client = self._build_http_client(token)

        try:
            backend = self._resolve_backend(http_client)

            segmenter = TextSegmenter(SegmenterConfig(chunk_size=int(settings.chunk_size)))
            chunks = segmenter.split_text(request.text)
            if len(chunks) > 1:
                logger.info(f"Text split into {len(chunks)} chunks")

            executor = ResilientExecutor(self.retry_policy(), sleeper=self.sleeper)
            strong_loop = StrongValidationLoop(executor, self.validator)

            results: List[str] = []
            total_tokens = 0
            strong_retries = 0
            detected_lang = None

            for i, chunk in enumerate(chunks, start=1):
                token.raise_if_cancelled()
                if len(chunks) > 1:
                    logger.info(f"Translating chunk {i}/{len(chunks)}...")
                self._report((i - 1) / len(chunks), f"Translating chunk {i}/{len(chunks)}")

                backend_request = request.for_segment(chunk)
                try:
                    response = executor.execute(lambda: backend.translate(backend_request), token)

                    if request.strong_mode:
                        response = strong_loop.run(
                            backend,
                            backend_request,
                            response,
                            request.strong_retries,
                            cancel_token=token,
                            chunk=i
                        )
                        strong_retries += strong_loop.attempts
                except LLMTranslateError as e:
                    logger.error(f"Failed to translate chunk {i}: {e}")
                    raise

                results.append(response.text)
                total_tokens += response.tokens_used
                detected_lang = detected_lang or response.detected_lang

            self._report(1.0, "Translation complete")

            return TranslationResult(
                text=CHUNK_SEPARATOR.join(results),
                detected_lang=detected_lang,
                tokens_used=total_tokens,
                segments=len(chunks),
                retries=strong_retries,
            )
        finally:
            http_client.close()

    def analyze(self, text: str, cancel_token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """
        Run the analyses enabled in settings over ``text``.

        Returns:
            Frontmatter fields to add (empty when nothing is enabled or every
            analysis failed)

        Raises:
            CancellationRequestedError: cancelled or deadline passed
            ConfigurationError: backend or proxy configuration is invalid
        """
        steps = analysis_steps(self.config.settings)
        if not steps or not text.strip():
            return {}

        token = cancel_token or CancellationToken()
        http_client = self._build_http_client(token)
        try:
            backend = self._resolve_backend(http_client)
            executor = ResilientExecutor(self.retry_policy(), sleeper=self.sleeper)
            return DocumentAnalyzer(backend, executor, steps).run(text, token)
        finally:
            http_client.close()


def translate_text(
    text: str,
    config: Optional[AppConfig] = None,
    **request_options
) -> TranslationResult:
    """One-shot helper: build a pipeline and translate ``text``."""
    return TranslationPipeline(config).translate(TranslationRequest(text=text, **request_options))
