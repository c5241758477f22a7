"""Tests for the local assistant CLI backends (claude, codex)."""

import subprocess

import httpx
import pytest

from llmtrans.core.exceptions import BackendError, InvalidConfigurationError
from llmtrans.core.models import BackendRequest
from llmtrans.translation.backends import cli_backends
from llmtrans.translation.backends.cli_backends import ClaudeCLIBackend, CodexCLIBackend, parse_codex_events
from llmtrans.utils.config_loader import BackendConfig


@pytest.fixture
def request_():
    return BackendRequest(text="Hello world", source_lang="en", target_lang="fr")


class FakeRun:
    """Stand-in for subprocess.run returning scripted CompletedProcess objects."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, args, input=None, capture_output=False, text=False, timeout=None):
        self.calls.append({"args": args, "input": input, "timeout": timeout})
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        returncode, stdout, stderr = result
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)


class TestParseCodexEvents:
    """Test JSONL event parsing."""

    def test_last_message_and_usage(self):
        stdout = "\n".join([
            '{"type": "thread.started"}',
            '{"type": "item.completed", "item": {"type": "agent_message", "text": "draft"}}',
            'not json',
            '{"type": "item.completed", "item": {"type": "agent_message", "text": "Bonjour le monde"}}',
            '{"type": "turn.completed", "usage": {"input_tokens": 10, "output_tokens": 4}}',
        ])
        assert parse_codex_events(stdout) == ("Bonjour le monde", 14)

    def test_plain_text_fallback(self):
        assert parse_codex_events("  Bonjour\n") == ("Bonjour", 0)


class TestClaudeCLIBackend:
    """Test the claude CLI backend."""

    def test_translate(self, monkeypatch, request_):
        run = FakeRun((0, "Bonjour le monde\n", ""))
        monkeypatch.setattr(cli_backends.subprocess, "run", run)

        response = ClaudeCLIBackend(BackendConfig()).translate(request_)

        assert response.text == "Bonjour le monde"
        call = run.calls[0]
        assert call["args"][0] == "claude"
        assert call["args"][1] == "-p"
        assert call["args"][-2:] == ["--output-format", "text"]
        assert call["input"] == "Hello world"
        assert call["timeout"] == 300.0

    def test_timeout_from_client(self, monkeypatch, request_):
        run = FakeRun((0, "ok", ""))
        monkeypatch.setattr(cli_backends.subprocess, "run", run)

        with httpx.Client(timeout=45) as client:
            ClaudeCLIBackend(BackendConfig(), client).translate(request_)
        assert run.calls[0]["timeout"] == 45

    def test_nonzero_exit(self, monkeypatch, request_):
        monkeypatch.setattr(cli_backends.subprocess, "run", FakeRun((1, "", "not logged in")))

        with pytest.raises(BackendError, match="exit status 1, stderr: not logged in"):
            ClaudeCLIBackend(BackendConfig()).translate(request_)

    def test_subprocess_timeout_is_transient(self, monkeypatch, request_):
        monkeypatch.setattr(cli_backends.subprocess, "run", FakeRun(subprocess.TimeoutExpired("claude", 300)))

        with pytest.raises(BackendError, match="timeout"):
            ClaudeCLIBackend(BackendConfig()).translate(request_)

    def test_custom_executable_path(self, monkeypatch):
        monkeypatch.setattr(cli_backends.shutil, "which", lambda path: path if path == "/opt/bin/claude" else None)

        ClaudeCLIBackend(BackendConfig(base_url="/opt/bin/claude")).validate_config()
        with pytest.raises(InvalidConfigurationError, match="claude CLI not found"):
            ClaudeCLIBackend(BackendConfig()).validate_config()


class TestCodexCLIBackend:
    """Test the codex CLI backend."""

    def test_json_mode(self, monkeypatch, request_):
        events = (
            '{"type": "item.completed", "item": {"type": "agent_message", "text": "Bonjour"}}\n'
            '{"type": "turn.completed", "usage": {"input_tokens": 2, "output_tokens": 3}}\n'
        )
        run = FakeRun((0, events, ""))
        monkeypatch.setattr(cli_backends.subprocess, "run", run)

        response = CodexCLIBackend(BackendConfig()).translate(request_)

        assert response.text == "Bonjour"
        assert response.tokens_used == 5
        args = run.calls[0]["args"]
        assert args[:3] == ["codex", "exec", "--json"]
        assert args[3].endswith("Text to translate:\nHello world")

    def test_falls_back_to_text_mode(self, monkeypatch, request_):
        run = FakeRun((2, "", "unknown flag --json"), (0, "Bonjour\n", ""))
        monkeypatch.setattr(cli_backends.subprocess, "run", run)

        response = CodexCLIBackend(BackendConfig()).translate(request_)

        assert response.text == "Bonjour"
        assert response.tokens_used == 0
        assert run.calls[1]["args"][:2] == ["codex", "exec"]
        assert "--json" not in run.calls[1]["args"]

    def test_complete_embeds_text_after_instruction(self, monkeypatch):
        run = FakeRun((0, "TAGS: pluie, paris\n", ""))
        monkeypatch.setattr(cli_backends.subprocess, "run", run)

        response = CodexCLIBackend(BackendConfig()).complete("Extract tags.\n\nText to analyze:", "Il pleut", 0.3, 200)

        assert response.text == "TAGS: pluie, paris"
        assert run.calls[0]["args"][3] == "Extract tags.\n\nText to analyze:\n\nIl pleut"
