"""
Exception hierarchy for llm-translate.

Every error raised by the translation core derives from LLMTranslateError so
callers (the CLI, batch drivers) can report them uniformly.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List


class LLMTranslateError(Exception):
    """Base exception for all llm-translate errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        suggestion: Optional[str] = None
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            details: Additional error details
            recoverable: Whether the caller may retry the whole operation
            suggestion: Suggested fix or workaround
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "suggestion": self.suggestion
        }

    def __str__(self) -> str:
        return self.message


class ConfigurationError(LLMTranslateError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        invalid_value: Optional[Any] = None,
        valid_values: Optional[List[Any]] = None
    ):
        details = {
            "config_key": config_key,
            "invalid_value": invalid_value,
            "valid_values": valid_values
        }

        suggestion = None
        if config_key and valid_values:
            suggestion = f"Valid values for {config_key}: {', '.join(map(str, valid_values))}"
        elif config_key:
            suggestion = f"Check configuration for '{config_key}'"

        super().__init__(message, details, recoverable=False, suggestion=suggestion)
        self.config_key = config_key
        self.invalid_value = invalid_value
        self.valid_values = valid_values


class UnknownBackendError(ConfigurationError):
    """Raised when no backend is registered under the requested name."""

    def __init__(self, name: str, known: Optional[List[str]] = None):
        super().__init__(
            f"unknown provider: {name}",
            config_key="default_provider",
            invalid_value=name,
            valid_values=sorted(known) if known else None
        )
        self.name = name


class InvalidConfigurationError(ConfigurationError):
    """Raised by a backend's self-validation (missing key, endpoint, executable)."""

    def __init__(self, backend: str, message: str, config_key: Optional[str] = None):
        super().__init__(message, config_key=config_key)
        self.backend = backend
        self.details["backend"] = backend
        if config_key == "api_key":
            self.suggestion = f"Set an API key for {backend} in the config file or environment."


class UnsupportedProxySchemeError(ConfigurationError):
    """Raised when a proxy URL uses a scheme other than http(s)/socks5(h)."""

    SUPPORTED = ["http", "https", "socks5", "socks5h"]

    def __init__(self, scheme: str):
        super().__init__(
            f"unsupported proxy scheme: {scheme}",
            config_key="proxy.url",
            invalid_value=scheme,
            valid_values=self.SUPPORTED
        )
        self.scheme = scheme


class BackendError(LLMTranslateError):
    """Raised when a translation backend call fails.

    The message keeps the upstream error text (status codes, "timeout",
    "connection refused", ...) because retry classification inspects it.
    """

    def __init__(
        self,
        backend: str,
        message: str,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        details = {
            "backend": backend,
            "original_error": str(original_error) if original_error else None,
            "status_code": status_code
        }
        super().__init__(f"{backend}: {message}", details, recoverable=True)
        self.backend = backend
        self.original_error = original_error
        self.status_code = status_code


class RetryExhaustedError(LLMTranslateError):
    """Raised when every retry of a retryable backend failure has been used."""

    def __init__(self, retries: int, last_error: Exception):
        details = {
            "retries": retries,
            "backend": getattr(last_error, "backend", None),
            "last_error": str(last_error)
        }
        super().__init__(
            f"failed after {retries} retries: {last_error}",
            details,
            recoverable=True,
            suggestion="Increase settings.retry_count or settings.retry_delay, or check the provider status."
        )
        self.retries = retries
        self.last_error = last_error


class StrongValidationExhaustedError(LLMTranslateError):
    """Raised when strong mode could not obtain a clean translation."""

    def __init__(self, retries: int, fragments: Optional[List[str]] = None, chunk: Optional[int] = None):
        message = f"strong validation failed after {retries} retries"
        if fragments:
            message += f" (untranslated: {', '.join(fragments)})"
        details = {"retries": retries, "fragments": fragments or [], "chunk": chunk}
        suggestion = "Increase --strong-retries, try a stronger model, or add allowed terms to strong_validation."
        super().__init__(message, details, recoverable=True, suggestion=suggestion)
        self.retries = retries
        self.fragments = fragments or []
        self.chunk = chunk


class CancellationRequestedError(LLMTranslateError):
    """Raised when the caller cancels a translation or its deadline passes."""

    def __init__(self, message: str = "translation cancelled"):
        super().__init__(message, recoverable=False)


class GlossaryError(LLMTranslateError):
    """Raised when a glossary file cannot be read or parsed."""

    def __init__(self, path: str, message: str):
        super().__init__(
            f"failed to load glossary {path}: {message}",
            {"path": path},
            suggestion="Glossary files must be YAML or JSON lists of {source, target} entries."
        )
        self.path = path


class AnalysisError(LLMTranslateError):
    """Raised when a document analysis reply does not have the expected shape."""

    def __init__(self, analysis: str, message: str, reply: str = ""):
        super().__init__(
            f"{analysis} analysis failed: {message}",
            {"analysis": analysis, "reply": reply},
            recoverable=True
        )
        self.analysis = analysis
        self.reply = reply
