"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Dict, List, Tuple, Union

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from llmtrans.core.exceptions import BackendError
from llmtrans.core.models import BackendRequest, BackendResponse
from llmtrans.translation.base import TranslationBackend
from llmtrans.translation.registry import BackendRegistry
from llmtrans.utils.config_loader import AppConfig, BackendConfig, Settings


class FakeBackend(TranslationBackend):
    """Scripted backend: each call pops the next reply (text or exception)."""

    name = "fake"
    default_model = "fake-model"
    default_base_url = "http://fake.invalid"
    requires_api_key = False

    def __init__(
        self,
        config=None,
        http_client=None,
        prompts=None,
        replies: List[Union[str, Exception]] = None,
        tokens: int = 5
    ):
        super().__init__(config, http_client, prompts)
        self.replies = list(replies or [])
        self.tokens = tokens
        self.requests: List[BackendRequest] = []
        self.completions: List[Tuple[str, str, float, int]] = []
        # system prompt marker -> queued replies for analysis calls
        self.analysis_replies: Dict[str, List[Union[str, Exception]]] = {}

    def _respond(self, reply: Union[str, Exception]) -> BackendResponse:
        if isinstance(reply, Exception):
            raise reply
        return BackendResponse(text=reply, tokens_used=self.tokens, backend=self.name, model=self.model)

    def translate(self, request: BackendRequest) -> BackendResponse:
        self.requests.append(request)
        return self._respond(self.replies.pop(0) if self.replies else f"[{request.target_lang}] {request.text}")

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        self.completions.append((system_prompt, text, temperature, max_tokens))
        for marker, queued in self.analysis_replies.items():
            if marker in system_prompt and queued:
                return self._respond(queued.pop(0))
        return self._respond(text)


@pytest.fixture
def fake_backend():
    """A FakeBackend with no scripted replies (echoes with a language tag)."""
    return FakeBackend()


@pytest.fixture
def registry(fake_backend):
    """Private registry whose 'fake' entry always returns ``fake_backend``."""
    reg = BackendRegistry()

    def factory(config, http_client, prompts):
        fake_backend.config = config
        fake_backend.http_client = http_client
        return fake_backend

    reg.register("fake", factory)
    return reg


@pytest.fixture
def app_config():
    """AppConfig selecting the fake backend with fast retries."""
    return AppConfig(
        default_backend="fake",
        settings=Settings(retry_count=3, retry_delay=1.0),
        backends={"fake": BackendConfig(base_url="http://fake.invalid")},
    )


@pytest.fixture
def recorded_delays():
    """Sleeper that records backoff delays instead of sleeping."""
    delays = []

    def sleeper(seconds, token):
        delays.append(seconds)
        return token.cancelled

    sleeper.delays = delays
    return sleeper


@pytest.fixture
def transient_error():
    return BackendError("fake", "unexpected status code: 503", status_code=503)


@pytest.fixture
def fatal_error():
    return BackendError("fake", "API error (status 401): invalid api key", status_code=401)


@pytest.fixture
def sample_text():
    """Sample text for testing."""
    return "Hello world"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep proxy and key variables from the host out of config loading."""
    for var in (
        "LLM_TRANSLATE_PROVIDER", "LLM_TRANSLATE_MODEL", "LLM_TRANSLATE_PROXY",
        "HTTPS_PROXY", "HTTP_PROXY", "ALL_PROXY", "NO_PROXY",
        "https_proxy", "http_proxy", "all_proxy", "no_proxy",
        "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_API_KEY", "OPENROUTER_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
