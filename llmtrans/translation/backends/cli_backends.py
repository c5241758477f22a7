"""Backends that drive a locally installed assistant CLI (claude, codex)."""

import json
import logging
import shutil
import subprocess
import time
from typing import List, Optional, Tuple

from llmtrans.core.exceptions import BackendError, InvalidConfigurationError
from llmtrans.core.models import BackendRequest, BackendResponse
from ..base import TranslationBackend
from ..registry import register_backend

logger = logging.getLogger(__name__)

DEFAULT_CLI_TIMEOUT = 300.0


class CLIBackend(TranslationBackend):
    """Common plumbing: the executable path lives in ``base_url``."""

    requires_api_key = False
    executable = ""

    def __init__(self, config=None, http_client=None, prompts=None):
        super().__init__(config, http_client, prompts)
        self.cli_path = self.config.base_url or self.executable
        self.timeout = DEFAULT_CLI_TIMEOUT
        if http_client is not None and http_client.timeout.read is not None:
            self.timeout = http_client.timeout.read

    def validate_config(self) -> None:
        if shutil.which(self.cli_path) is None:
            raise InvalidConfigurationError(
                self.name, f"{self.executable} CLI not found at '{self.cli_path}'", "base_url"
            )

    def run(self, args: List[str], stdin: Optional[str] = None) -> str:
        try:
            completed = subprocess.run(
                [self.cli_path, *args],
                input=stdin,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise BackendError(self.name, f"{self.executable} CLI timeout after {self.timeout:.0f}s", original_error=e) from e
        except OSError as e:
            raise BackendError(self.name, f"failed to start {self.executable} CLI: {e}", original_error=e) from e

        if completed.returncode != 0:
            raise BackendError(
                self.name,
                f"{self.executable} CLI error: exit status {completed.returncode}, stderr: {completed.stderr.strip()}"
            )
        return completed.stdout


@register_backend("claude-cli")
class ClaudeCLIBackend(CLIBackend):
    """Runs ``claude -p <instructions>`` with the segment on stdin."""

    name = "claude-cli"
    executable = "claude"

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        start_time = time.time()
        output = self.run(["-p", system_prompt, "--output-format", "text"], stdin=text)

        return BackendResponse(
            text=output.strip(),
            backend=self.name,
            model=self.model,
            latency=time.time() - start_time,
        )


@register_backend("codex-cli")
class CodexCLIBackend(CLIBackend):
    """Runs ``codex exec --json``; the segment is embedded in the prompt."""

    name = "codex-cli"
    executable = "codex"

    def translate(self, request: BackendRequest) -> BackendResponse:
        prompt = self.build_system_prompt(request)
        return self.run_prompt(f"{prompt}\n\nText to translate:\n{request.text}")

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        return self.run_prompt(f"{system_prompt}\n\n{text}")

    def run_prompt(self, prompt: str) -> BackendResponse:
        """Codex has no separate instruction channel: everything goes in one prompt."""
        start_time = time.time()

        try:
            text, tokens_used = parse_codex_events(self.run(["exec", "--json", prompt]))
        except BackendError as e:
            # older codex builds have no --json flag
            logger.debug(f"codex --json failed, retrying in text mode: {e}")
            text, tokens_used = self.run(["exec", prompt]).strip(), 0

        return BackendResponse(
            text=text,
            tokens_used=tokens_used,
            backend=self.name,
            model=self.model,
            latency=time.time() - start_time,
        )


def parse_codex_events(stdout: str) -> Tuple[str, int]:
    """Extract the last agent message and token usage from a JSONL stream."""
    last_message = ""
    tokens_used = 0

    for line in stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(event, dict):
            continue

        item = event.get("item") or {}
        if event.get("type") == "item.completed" and item.get("type") in ("agent_message", "message"):
            last_message = item.get("text", "")

        usage = event.get("usage")
        if event.get("type") == "turn.completed" and usage:
            tokens_used = usage.get("input_tokens", 0) + usage.get("output_tokens", 0)

    if not last_message:
        return stdout.strip(), tokens_used
    return last_message, tokens_used
