"""OpenAI translation backend."""

import time
from typing import List, Dict

import openai
from openai import OpenAI

from llmtrans.core.exceptions import BackendError
from llmtrans.core.models import BackendResponse
from ..base import TranslationBackend
from ..registry import register_backend


def describe_openai_error(error: Exception) -> str:
    """Render an SDK error so retry classification can read it."""
    if isinstance(error, openai.APITimeoutError):
        return f"request timeout: {error}"
    if isinstance(error, openai.APIConnectionError):
        return f"connection failed: {error}"
    if isinstance(error, openai.RateLimitError):
        return f"rate limit exceeded (429): {error}"
    if isinstance(error, openai.APIStatusError):
        return f"API error (status {error.status_code}): {error}"
    return str(error)


@register_backend("openai")
class OpenAIBackend(TranslationBackend):
    """OpenAI chat-completions backend."""

    name = "openai"
    default_model = "gpt-4o-mini"
    default_base_url = "https://api.openai.com/v1"

    def __init__(self, config=None, http_client=None, prompts=None):
        super().__init__(config, http_client, prompts)
        self._client = None

    @property
    def client(self) -> OpenAI:
        # built lazily so validate_config() runs before the SDK sees a missing key
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=self.http_client,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def _build_messages(system_prompt: str, text: str) -> List[Dict[str, str]]:
        """Build messages for the chat API."""
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": text},
        ]

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        start_time = time.time()

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(system_prompt, text),
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            status = getattr(e, "status_code", None)
            raise BackendError(self.name, describe_openai_error(e), original_error=e, status_code=status) from e

        if not response.choices:
            raise BackendError(self.name, "no choices in response")

        return BackendResponse(
            text=response.choices[0].message.content or "",
            tokens_used=response.usage.total_tokens if response.usage else 0,
            backend=self.name,
            model=self.model,
            latency=time.time() - start_time,
        )


@register_backend("openrouter")
class OpenRouterBackend(OpenAIBackend):
    """OpenRouter backend (OpenAI-compatible API)."""

    name = "openrouter"
    default_model = "anthropic/claude-3.5-sonnet"
    default_base_url = "https://openrouter.ai/api/v1"
