"""
Base translation backend interface.
All translation engines must inherit from TranslationBackend.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from llmtrans.core.exceptions import BackendError, InvalidConfigurationError
from llmtrans.core.models import BackendRequest, BackendResponse
from llmtrans.utils.config_loader import BackendConfig, PromptsConfig


class TranslationBackend(ABC):
    """Abstract base class for translation backends.

    A backend answers one instruction + input call with one BackendResponse;
    translation and the analysis prompts are both built on ``complete``. How
    it gets there (REST payload, SDK call, local executable) is private to
    the subclass. Backends receive the call-scoped HTTP client built by the
    transport selector and must route all network traffic through it.
    """

    name = "base"
    default_model: Optional[str] = None
    default_base_url: Optional[str] = None
    requires_api_key = True

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        http_client: Optional[httpx.Client] = None,
        prompts: Optional[PromptsConfig] = None
    ):
        config = config or BackendConfig()
        self.api_key = config.api_key
        self.base_url = config.base_url or self.default_base_url or ""
        self.model = config.model or self.default_model or ""
        self.config = config
        self.http_client = http_client
        self.prompts = prompts or PromptsConfig()

    @abstractmethod
    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        """
        Run one instruction + input generation call.

        Args:
            system_prompt: Instructions (translation or analysis prompt)
            text: User content the instructions apply to
            temperature: Sampling temperature
            max_tokens: Response token limit

        Returns:
            BackendResponse with the generated text and token usage

        Raises:
            BackendError: the call failed; the message carries the upstream
                error text so the retry executor can classify it
        """

    def translate(self, request: BackendRequest) -> BackendResponse:
        """Translate one segment."""
        return self.complete(
            self.build_system_prompt(request),
            request.text,
            request.temperature,
            request.max_tokens
        )

    def validate_config(self) -> None:
        """Raise InvalidConfigurationError if the backend cannot run."""
        if not self.base_url:
            raise InvalidConfigurationError(
                self.name, f"base URL is required for provider {self.name}", "base_url"
            )
        if self.requires_api_key and not self.api_key:
            raise InvalidConfigurationError(
                self.name, f"API key is required for provider {self.name}", "api_key"
            )

    def build_system_prompt(self, request: BackendRequest) -> str:
        """Instruction text shared by all chat-style backends."""
        if request.source_lang == "auto":
            prompt = (
                f"You are a professional translator. Detect the source language and translate "
                f"the text to {request.target_lang}. Preserve the original formatting and structure. "
                f"Output only the translation without explanations."
            )
        else:
            prompt = self.prompts.system.format(
                source_lang=request.source_lang,
                target_lang=request.target_lang
            )

        if request.context:
            prompt += "\n\nContext: " + request.context

        if request.style:
            style_prompt = self.prompts.styles.get(request.style)
            if style_prompt:
                prompt += "\n\n" + style_prompt

        entries = [e for e in request.glossary if e.is_usable()]
        if entries:
            prompt += "\n\nGlossary (use these translations):\n"
            for entry in entries:
                prompt += f"- {entry.source} -> {entry.target}"
                if entry.note:
                    prompt += f" ({entry.note})"
                prompt += "\n"

        if request.preserve_format:
            prompt += "\n\nPreserve all formatting including markdown, HTML tags, and code blocks."

        return prompt

    def post_json(self, url: str, payload: Dict, headers: Optional[Dict[str, str]] = None) -> Dict:
        """POST ``payload`` through the shared client and decode the JSON body.

        Transport failures are re-raised as BackendError with "timeout" or
        "connection" in the message; HTTP errors carry the status code.
        """
        if self.http_client is None:
            raise BackendError(self.name, "no HTTP client configured")

        try:
            response = self.http_client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise BackendError(self.name, f"request timeout: {e}", original_error=e) from e
        except httpx.TransportError as e:
            raise BackendError(self.name, f"connection failed: {e}", original_error=e) from e

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(
                self.name,
                f"failed to decode response (status {response.status_code}): {response.text[:200]}",
                original_error=e,
                status_code=response.status_code
            ) from e

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise BackendError(
                self.name,
                f"API error (status {response.status_code}): {message}",
                status_code=response.status_code
            )

        if response.status_code != 200:
            raise BackendError(
                self.name,
                f"unexpected status code: {response.status_code}",
                status_code=response.status_code
            )

        return data

    def is_available(self) -> bool:
        """Check if backend is available and configured."""
        try:
            self.validate_config()
        except InvalidConfigurationError:
            return False
        return True

    def get_info(self) -> Dict:
        """Get backend information."""
        return {
            "name": self.name,
            "model": self.model,
            "base_url": self.base_url,
            "available": self.is_available()
        }
