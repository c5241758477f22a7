"""Translation backend implementations.

Importing this package registers every built-in backend on the default
registry.
"""

from .openai_backend import OpenAIBackend, OpenRouterBackend
from .anthropic_backend import AnthropicBackend
from .google_backend import GoogleBackend
from .ollama_backend import OllamaBackend
from .cli_backends import ClaudeCLIBackend, CodexCLIBackend

__all__ = [
    'OpenAIBackend',
    'OpenRouterBackend',
    'AnthropicBackend',
    'GoogleBackend',
    'OllamaBackend',
    'ClaudeCLIBackend',
    'CodexCLIBackend'
]
