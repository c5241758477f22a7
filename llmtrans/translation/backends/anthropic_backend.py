"""Anthropic Claude translation backend."""

import logging
import time

import anthropic
from anthropic import Anthropic

from llmtrans.core.exceptions import BackendError
from llmtrans.core.models import BackendResponse
from ..base import TranslationBackend
from ..registry import register_backend

logger = logging.getLogger(__name__)


def describe_anthropic_error(error: Exception) -> str:
    if isinstance(error, anthropic.APITimeoutError):
        return f"request timeout: {error}"
    if isinstance(error, anthropic.APIConnectionError):
        return f"connection failed: {error}"
    if isinstance(error, anthropic.RateLimitError):
        return f"rate limit exceeded (429): {error}"
    if isinstance(error, anthropic.APIStatusError):
        return f"API error (status {error.status_code}): {error}"
    return str(error)


@register_backend("anthropic")
class AnthropicBackend(TranslationBackend):
    """Anthropic Claude-based translation backend."""

    name = "anthropic"
    default_model = "claude-3-5-sonnet-20241022"
    default_base_url = "https://api.anthropic.com"

    def __init__(self, config=None, http_client=None, prompts=None):
        super().__init__(config, http_client, prompts)
        # the SDK appends /v1 itself
        if self.base_url.endswith("/v1"):
            self.base_url = self.base_url[:-3]
        elif self.base_url.endswith("/v1/"):
            self.base_url = self.base_url[:-4]
        self._client = None

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            if self.base_url != self.default_base_url:
                logger.info(f"Using custom Anthropic API endpoint: {self.base_url}")
            self._client = Anthropic(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=self.http_client,
                max_retries=0,
            )
        return self._client

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        start_time = time.time()

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": text}],
            )
        except anthropic.AnthropicError as e:
            status = getattr(e, "status_code", None)
            raise BackendError(self.name, describe_anthropic_error(e), original_error=e, status_code=status) from e

        if not response.content:
            raise BackendError(self.name, "no content in response")

        text = "".join(block.text for block in response.content if block.type == "text")

        return BackendResponse(
            text=text,
            tokens_used=response.usage.input_tokens + response.usage.output_tokens,
            backend=self.name,
            model=self.model,
            latency=time.time() - start_time,
        )
