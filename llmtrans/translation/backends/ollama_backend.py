"""Ollama local translation backend."""

import time

from llmtrans.core.models import BackendResponse
from ..base import TranslationBackend
from ..registry import register_backend


@register_backend("ollama")
class OllamaBackend(TranslationBackend):
    """Ollama local LLM translation backend (``/api/generate``)."""

    name = "ollama"
    default_model = "llama3.2"
    default_base_url = "http://localhost:11434"
    requires_api_key = False

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        start_time = time.time()

        payload = {
            "model": self.model,
            "system": system_prompt,
            "prompt": text,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        data = self.post_json(f"{self.base_url.rstrip('/')}/api/generate", payload)

        # Ollama reports prompt and completion counts separately, only when both ran
        prompt_tokens = data.get("prompt_eval_count") or 0
        eval_tokens = data.get("eval_count") or 0
        tokens_used = prompt_tokens + eval_tokens if prompt_tokens and eval_tokens else 0

        return BackendResponse(
            text=data.get("response", ""),
            tokens_used=tokens_used,
            backend=self.name,
            model=self.model,
            latency=time.time() - start_time,
        )
