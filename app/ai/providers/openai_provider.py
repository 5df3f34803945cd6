from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import OpenAI

from app.core.errors import AccessForbidden, GenerationError, QuotaExceeded

logger = logging.getLogger(__name__)

_QUOTA_MARKERS = ("quota", "too many requests", "rate limit")


def classify_generation_error(exc: Exception) -> GenerationError:
    """Map an SDK exception onto the engine taxonomy: 429/quota, 403, or anything else."""
    if isinstance(exc, GenerationError):
        return exc
    status = getattr(exc, "status_code", None)
    message = str(exc).lower()
    if isinstance(exc, openai.RateLimitError) or status == 429 or any(marker in message for marker in _QUOTA_MARKERS):
        return QuotaExceeded()
    if isinstance(exc, openai.PermissionDeniedError) or status == 403:
        return AccessForbidden()
    return GenerationError(f"Text generation failed: {exc}")


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
    ):
        self.model_name = model
        key = (api_key or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        # Retries are owned by app.ai.retry so quota backoff stays observable.
        self._client = OpenAI(
            api_key=key,
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=0,
        )

    def generate(self, prompt: str, *, json_mode: bool = True, temperature: float = 0.2) -> str:
        create_kwargs = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if json_mode:
            create_kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self._client.chat.completions.create(**create_kwargs)
        except Exception as exc:  # noqa: BLE001 - re-raised through the engine taxonomy
            logger.warning("openai_generate_failed model=%s prompt_len=%s: %s", self.model_name, len(prompt), exc)
            raise classify_generation_error(exc) from exc

        content = response.choices[0].message.content if response.choices else ""
        if not content:
            raise GenerationError("Empty response from text generation service", code="empty_response")
        return content
