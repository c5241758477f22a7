"""Google Gemini translation backend (REST generateContent)."""

import time

from llmtrans.core.exceptions import BackendError
from llmtrans.core.models import BackendResponse
from ..base import TranslationBackend
from ..registry import register_backend


@register_backend("google")
class GoogleBackend(TranslationBackend):
    """Gemini models through the Generative Language API."""

    name = "google"
    default_model = "gemini-2.0-flash"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    @staticmethod
    def _build_payload(system_prompt: str, text: str, temperature: float, max_tokens: int) -> dict:
        return {
            "contents": [
                {"role": "user", "parts": [{"text": text}]}
            ],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
            "systemInstruction": {
                "parts": [{"text": system_prompt}]
            },
        }

    def complete(self, system_prompt: str, text: str, temperature: float, max_tokens: int) -> BackendResponse:
        start_time = time.time()
        url = f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"

        data = self.post_json(
            url,
            self._build_payload(system_prompt, text, temperature, max_tokens),
            headers={"x-goog-api-key": self.api_key},
        )

        candidates = data.get("candidates") or []
        if not candidates:
            raise BackendError(self.name, "no candidates in response")

        parts = candidates[0].get("content", {}).get("parts", [])
        usage = data.get("usageMetadata") or {}

        return BackendResponse(
            text="".join(part.get("text", "") for part in parts),
            tokens_used=usage.get("totalTokenCount", 0),
            backend=self.name,
            model=self.model,
            latency=time.time() - start_time,
        )
