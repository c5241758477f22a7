"""
Backend registry.

Maps backend names to factories. Registration happens at import time of
``llmtrans.translation.backends`` (before any translation runs); afterwards
the registry is only read, so it needs no locking.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

import httpx

from llmtrans.core.exceptions import UnknownBackendError
from llmtrans.translation.base import TranslationBackend
from llmtrans.utils.config_loader import BackendConfig, PromptsConfig

logger = logging.getLogger(__name__)

BackendFactory = Callable[..., TranslationBackend]


class BackendRegistry:
    """Name -> backend factory mapping with validation on resolve."""

    def __init__(self):
        self._factories: Dict[str, BackendFactory] = {}

    def register(self, name: str, factory: BackendFactory) -> None:
        """Register ``factory`` under ``name``; a later registration replaces it."""
        if name in self._factories:
            logger.debug(f"Replacing backend registration for '{name}'")
        self._factories[name] = factory

    def resolve(
        self,
        name: str,
        config: BackendConfig,
        http_client: Optional[httpx.Client] = None,
        prompts: Optional[PromptsConfig] = None
    ) -> TranslationBackend:
        """
        Build and validate the backend registered as ``name``.

        Raises:
            UnknownBackendError: nothing is registered under ``name``
            InvalidConfigurationError: the backend rejected its configuration
        """
        backend = self.create(name, config, http_client, prompts)
        backend.validate_config()
        return backend

    def create(
        self,
        name: str,
        config: Optional[BackendConfig] = None,
        http_client: Optional[httpx.Client] = None,
        prompts: Optional[PromptsConfig] = None
    ) -> TranslationBackend:
        """Build the backend without validating it (used for listings)."""
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownBackendError(name, self.list_names())
        return factory(config or BackendConfig(), http_client, prompts)

    def list_names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)


default_registry = BackendRegistry()


def register_backend(name: str, registry: Optional[BackendRegistry] = None):
    """Class decorator registering a TranslationBackend subclass."""
    def decorator(cls):
        (registry or default_registry).register(name, cls)
        return cls
    return decorator


def list_backends() -> List[str]:
    return default_registry.list_names()
