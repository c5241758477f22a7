"""
Strong mode: validate each translated chunk and re-translate on failure.

Per chunk the loop starts from the first translation. If the validation
predicate flags leftover source-language text, the chunk is re-translated
with escalated guidance, up to ``strong_retries`` times. A re-translation
whose backend call fails still uses up its slot. When the budget runs out
the whole document fails.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from llmtrans.core.exceptions import CancellationRequestedError, StrongValidationExhaustedError
from llmtrans.core.models import BackendRequest, BackendResponse, ValidationOutcome
from llmtrans.translation.base import TranslationBackend
from llmtrans.translation.executor import CancellationToken, ResilientExecutor

logger = logging.getLogger(__name__)

ESCALATION_TEMPLATE = (
    "Previous translation contained untranslated text. "
    "Please ensure all text is properly translated to {target_lang}. {context}"
)

ValidationPredicate = Callable[[str, str, str], ValidationOutcome]


def escalate_context(target_lang: str, context: str) -> str:
    """Guidance sent with every re-translation attempt."""
    return ESCALATION_TEMPLATE.format(target_lang=target_lang, context=context)


class StrongValidationLoop:
    """Validation-retry state machine for one chunk at a time."""

    def __init__(self, executor: ResilientExecutor, validate: ValidationPredicate):
        self.executor = executor
        self.validate = validate
        self.attempts = 0  # re-translations issued by the last run()

    def run(
        self,
        backend: TranslationBackend,
        request: BackendRequest,
        response: BackendResponse,
        max_retries: int,
        cancel_token: Optional[CancellationToken] = None,
        chunk: Optional[int] = None
    ) -> BackendResponse:
        """
        Return the first response that passes validation.

        Args:
            backend: Backend used for re-translations
            request: The chunk's original backend request
            response: The chunk's first translation
            max_retries: Re-translation budget
            cancel_token: Shared cancellation signal
            chunk: 1-based chunk number, for messages

        Raises:
            StrongValidationExhaustedError: no attempt passed within the budget
            CancellationRequestedError: cancelled while retrying
        """
        self.attempts = 0
        outcome = self.validate(response.text, request.source_lang, request.target_lang)
        if outcome.passed:
            return response

        fragments: List[str] = outcome.fragments
        logger.warning(f"Strong validation failed for chunk {chunk or 1}: found source language text: {', '.join(fragments)}")

        retry_request = request.with_context(escalate_context(request.target_lang, request.context))

        for retry in range(1, max_retries + 1):
            self.attempts = retry
            logger.info(f"Retry {retry}/{max_retries}: requesting re-translation...")

            try:
                candidate = self.executor.execute(lambda: backend.translate(retry_request), cancel_token)
            except CancellationRequestedError:
                raise
            except Exception as e:
                logger.warning(f"Re-translation attempt {retry} failed: {e}")
                continue

            outcome = self.validate(candidate.text, request.source_lang, request.target_lang)
            if outcome.passed:
                logger.info("Strong validation passed")
                return candidate

            fragments = outcome.fragments or fragments
            logger.warning(f"Attempt {retry} still contains source language text: {', '.join(fragments)}")

        raise StrongValidationExhaustedError(max_retries, fragments, chunk=chunk)
