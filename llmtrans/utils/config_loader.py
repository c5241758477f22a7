"""Configuration loading and management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

from llmtrans.core.exceptions import ConfigurationError
from llmtrans.core.models import GlossaryEntry


DEFAULT_SYSTEM_PROMPT = (
    "You are a professional translator. Translate the following text from "
    "{source_lang} to {target_lang}. Preserve the original formatting and structure. "
    "Output only the translation without explanations."
)

DEFAULT_STYLES = {
    "formal": "Use formal language appropriate for official documents.",
    "informal": "Use casual, conversational language.",
    "technical": "Preserve technical terminology accurately.",
    "literary": "Maintain literary style and artistic expression.",
}

DEFAULT_ALLOWED_PATTERNS = [
    r"\b[A-Z]{2,}\b",
    r"\b[a-z]+[A-Z][a-zA-Z]*\b",
    r"\b[A-Z][a-z]+[A-Z][a-zA-Z]*\b",
    r'"[^"]+',
    r"'[^']+'",
    r"`[^`]+`",
    r"\b[a-z_]+\([^)]*\)",
    r"\b(Google|Microsoft|Apple|Amazon|OpenAI|Anthropic)\b",
    r"https?://[^\s]+",
    r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
]

DEFAULT_ALLOWED_TERMS = [
    "API", "HTTP", "JSON", "XML", "SQL", "REST", "GraphQL",
    "OAuth", "JWT", "SDK", "IDE", "CLI", "GUI", "URL", "IP",
    "DNS", "SSL", "TLS", "SSH", "FTP", "CPU", "GPU", "RAM",
    "SSD", "PDF", "HTML", "CSS", "iOS", "Android", "Linux",
    "Windows", "macOS",
]

# Created on demand when only an API key is found in the environment
ENV_BACKENDS = {
    "OPENAI_API_KEY": ("openai", "https://api.openai.com/v1", "gpt-4o-mini"),
    "ANTHROPIC_API_KEY": ("anthropic", "https://api.anthropic.com", "claude-3-5-sonnet-20241022"),
    "GOOGLE_API_KEY": ("google", "https://generativelanguage.googleapis.com/v1beta", "gemini-2.0-flash"),
    "OPENROUTER_API_KEY": ("openrouter", "https://openrouter.ai/api/v1", "anthropic/claude-3.5-sonnet"),
}


@dataclass
class Settings:
    temperature: float = 0.3
    max_tokens: int = 4096
    timeout: int = 60
    chunk_size: int = 3000
    preserve_format: bool = False
    retry_count: int = 3
    retry_delay: float = 1.0
    # post-translation analysis written into the output frontmatter
    sentiment: bool = False
    tags_count: int = 0
    classify: bool = False
    emotions: bool = False
    factuality: bool = False


@dataclass
class StrongValidationConfig:
    enabled: bool = False
    max_retries: int = 3
    allowed_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_PATTERNS))
    allowed_terms: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_TERMS))


@dataclass
class ProxyConfig:
    """Outbound proxy settings; an empty url means direct connections."""
    url: str = ""
    username: str = ""
    password: str = ""
    no_proxy: List[str] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass
class BackendConfig:
    """Per-backend credentials, endpoint, model and optional proxy override."""
    api_key: str = ""
    base_url: str = ""
    model: str = ""
    proxy: ProxyConfig = field(default_factory=ProxyConfig)


@dataclass
class PromptsConfig:
    system: str = DEFAULT_SYSTEM_PROMPT
    styles: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STYLES))


@dataclass
class AppConfig:
    default_backend: str = "openai"
    default_target_language: str = "en"
    settings: Settings = field(default_factory=Settings)
    strong_validation: StrongValidationConfig = field(default_factory=StrongValidationConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    backends: Dict[str, BackendConfig] = field(default_factory=dict)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)
    glossary: List[GlossaryEntry] = field(default_factory=list)

    def backend_config(self, name: Optional[str] = None) -> BackendConfig:
        """Config for ``name`` (default backend when omitted); empty if absent."""
        return self.backends.get(name or self.default_backend, BackendConfig())

    def effective_proxy(self, name: Optional[str] = None) -> ProxyConfig:
        """Backend-level proxy override, falling back to the global proxy."""
        backend_proxy = self.backend_config(name).proxy
        if backend_proxy.url:
            return backend_proxy
        return self.proxy

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["providers"] = data.pop("backends")
        data["default_provider"] = data.pop("default_backend")
        return data


def get_config_paths() -> List[Path]:
    """Locations searched when no explicit config path is given."""
    return [
        Path("llm-translate.yaml"),
        Path.home() / ".config" / "llm-translate" / "config.yaml",
        Path("/etc/llm-translate/config.yaml"),
    ]


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Explicit config file; when omitted the standard locations
            are searched and defaults are used if none exists.

    Returns:
        AppConfig with ${VAR} expansion and environment overrides applied
    """
    config = AppConfig()

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        config = config_from_dict(_read_yaml(path))
    else:
        for path in get_config_paths():
            if path.exists():
                config = config_from_dict(_read_yaml(path))
                break

    expand_env_vars_in_config(config)
    override_with_env(config)
    return config


def save_config(config: AppConfig, config_path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration to write
        config_path: Output path
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"failed to load config from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"failed to load config from {path}: top level must be a mapping")
    return data


def _proxy_from_dict(data: Optional[Dict[str, Any]]) -> ProxyConfig:
    data = data or {}
    no_proxy = data.get("no_proxy") or []
    if isinstance(no_proxy, str):
        no_proxy = no_proxy.split(",")
    return ProxyConfig(
        url=str(data.get("url") or ""),
        username=str(data.get("username") or ""),
        password=str(data.get("password") or ""),
        no_proxy=[str(p) for p in no_proxy],
    )


def glossary_entry_from_dict(data: Dict[str, Any]) -> GlossaryEntry:
    """Build an entry, accepting ``term``/``translation`` as aliases."""
    return GlossaryEntry(
        source=str(data.get("source") or data.get("term") or ""),
        target=str(data.get("target") or data.get("translation") or ""),
        note=str(data.get("note") or ""),
        case_sensitive=bool(data.get("case_sensitive", False)),
        context=str(data.get("context") or ""),
    )


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """Build an AppConfig from a parsed YAML mapping, keeping defaults for gaps."""
    config = AppConfig()

    config.default_backend = data.get("default_provider", config.default_backend)
    config.default_target_language = data.get("default_target_language", config.default_target_language)

    settings = data.get("settings") or {}
    for key, value in settings.items():
        if hasattr(config.settings, key) and value is not None:
            setattr(config.settings, key, value)

    strong = data.get("strong_validation") or {}
    for key, value in strong.items():
        if hasattr(config.strong_validation, key) and value is not None:
            setattr(config.strong_validation, key, value)

    config.proxy = _proxy_from_dict(data.get("proxy"))

    for name, backend in (data.get("providers") or {}).items():
        backend = backend or {}
        config.backends[name] = BackendConfig(
            api_key=str(backend.get("api_key") or ""),
            base_url=str(backend.get("base_url") or ""),
            model=str(backend.get("model") or ""),
            proxy=_proxy_from_dict(backend.get("proxy")),
        )

    prompts = data.get("prompts") or {}
    if prompts.get("system"):
        config.prompts.system = prompts["system"]
    if prompts.get("styles"):
        config.prompts.styles.update(prompts["styles"])

    config.glossary = [glossary_entry_from_dict(e) for e in (data.get("glossary") or [])]

    _validate(config)
    return config


def _validate(config: AppConfig) -> None:
    settings = config.settings
    if int(settings.chunk_size) <= 0:
        raise ConfigurationError("chunk_size must be positive", "settings.chunk_size", settings.chunk_size)
    if int(settings.retry_count) < 0:
        raise ConfigurationError("retry_count must not be negative", "settings.retry_count", settings.retry_count)
    if float(settings.retry_delay) < 0:
        raise ConfigurationError("retry_delay must not be negative", "settings.retry_delay", settings.retry_delay)
    if int(config.strong_validation.max_retries) < 0:
        raise ConfigurationError(
            "max_retries must not be negative",
            "strong_validation.max_retries",
            config.strong_validation.max_retries
        )


def expand_env_vars(value: str) -> str:
    """Replace a whole-value ``${VAR}`` reference with the variable's value."""
    if value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


def _expand_proxy(proxy: ProxyConfig) -> None:
    proxy.url = expand_env_vars(proxy.url)
    proxy.username = expand_env_vars(proxy.username)
    proxy.password = expand_env_vars(proxy.password)


def expand_env_vars_in_config(config: AppConfig) -> None:
    for backend in config.backends.values():
        backend.api_key = expand_env_vars(backend.api_key)
        backend.base_url = expand_env_vars(backend.base_url)
        backend.model = expand_env_vars(backend.model)
        _expand_proxy(backend.proxy)
    _expand_proxy(config.proxy)


def override_with_env(config: AppConfig) -> AppConfig:
    """Override config with environment variables."""
    backend = os.getenv("LLM_TRANSLATE_PROVIDER")
    if backend:
        config.default_backend = backend

    model = os.getenv("LLM_TRANSLATE_MODEL")
    if model and config.default_backend in config.backends:
        config.backends[config.default_backend].model = model

    for env_var in ("LLM_TRANSLATE_PROXY", "HTTPS_PROXY", "HTTP_PROXY", "ALL_PROXY"):
        proxy = os.getenv(env_var)
        if proxy:
            config.proxy.url = proxy
            break

    no_proxy = os.getenv("NO_PROXY")
    if no_proxy:
        config.proxy.no_proxy = no_proxy.split(",")

    for env_var, (name, base_url, default_model) in ENV_BACKENDS.items():
        api_key = os.getenv(env_var)
        if not api_key:
            continue
        if name in config.backends:
            config.backends[name].api_key = api_key
        else:
            config.backends[name] = BackendConfig(api_key=api_key, base_url=base_url, model=default_model)

    return config


def apply_overrides(
    config: AppConfig,
    backend: Optional[str] = None,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    proxy_url: Optional[str] = None,
    proxy_auth: Optional[str] = None,
    no_proxy: bool = False,
    **settings: Any
) -> AppConfig:
    """
    Return a copy of ``config`` with call-site overrides applied.

    The original config is left untouched; the selected backend's config is
    replaced rather than edited so previously built backends never observe it.
    """
    updated = replace(
        config,
        settings=replace(config.settings),
        proxy=replace(config.proxy, no_proxy=list(config.proxy.no_proxy)),
        backends=dict(config.backends),
    )

    if backend:
        updated.default_backend = backend

    name = updated.default_backend
    current = updated.backends.get(name, BackendConfig())
    changes = {}
    if model:
        changes["model"] = model
    if api_key:
        changes["api_key"] = api_key
    if base_url:
        changes["base_url"] = base_url
    if changes or name not in updated.backends:
        updated.backends[name] = replace(current, **changes)

    if no_proxy:
        updated.proxy = ProxyConfig()
        updated.backends[name] = replace(updated.backends[name], proxy=ProxyConfig())
    elif proxy_url:
        updated.proxy.url = proxy_url

    if proxy_auth and not no_proxy:
        username, _, password = proxy_auth.partition(":")
        updated.proxy.username = username
        updated.proxy.password = password

    for key, value in settings.items():
        if value is None:
            continue
        if not hasattr(updated.settings, key):
            raise ConfigurationError(f"unknown setting: {key}", config_key=key)
        setattr(updated.settings, key, value)

    _validate(updated)
    return updated
