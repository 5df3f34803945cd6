from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.ai.config import load_ai_config
from app.ai.types import TextGenerator
from app.core.errors import GenerationError, QuotaExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_MARKERS = ("```json", "```")


def quota_retrying(
    *,
    max_retries: int,
    base_delay_s: float,
    jitter_s: float,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Retry policy for quota errors: base * 2**n seconds plus up to ``jitter_s`` of noise."""
    wait = wait_exponential(multiplier=base_delay_s)
    if jitter_s > 0:
        wait = wait + wait_random(0, jitter_s)
    return Retrying(
        retry=retry_if_exception_type(QuotaExceeded),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait,
        sleep=sleep,
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.INFO),
    )


def call_with_quota_retry(
    func: Callable[[], T],
    *,
    max_retries: int | None = None,
    base_delay_s: float | None = None,
    jitter_s: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "llm_call",
) -> T:
    """Retry ``func`` on QuotaExceeded only. Other collaborator errors propagate on the first attempt."""
    cfg = load_ai_config()
    retryer = quota_retrying(
        max_retries=cfg.max_retries if max_retries is None else max_retries,
        base_delay_s=cfg.retry_base_delay_s if base_delay_s is None else base_delay_s,
        jitter_s=cfg.retry_jitter_s if jitter_s is None else jitter_s,
        sleep=sleep,
    )
    try:
        return retryer(func)
    except QuotaExceeded:
        logger.warning("%s_quota_exhausted attempts=%s", label, retryer.statistics.get("attempt_number"))
        raise


def strip_json_fences(raw: str) -> str:
    cleaned = raw
    for marker in _FENCE_MARKERS:
        cleaned = cleaned.replace(marker, "")
    return cleaned.strip()


def generate_json(
    generator: TextGenerator,
    prompt: str,
    *,
    temperature: float = 0.2,
    label: str = "llm_json",
    **retry_kwargs: Any,
) -> dict[str, Any]:
    """Call the generator in JSON mode with quota retry and decode the payload into a dict."""
    raw = call_with_quota_retry(
        lambda: generator.generate(prompt, json_mode=True, temperature=temperature),
        label=label,
        **retry_kwargs,
    )
    if not raw or not raw.strip():
        raise GenerationError(f"Empty response from {label}", code="empty_response")
    try:
        parsed = json.loads(strip_json_fences(raw))
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Invalid JSON from {label}: {exc}", code="invalid_json") from exc
    if not isinstance(parsed, dict):
        raise GenerationError(f"Expected a JSON object from {label}", code="invalid_schema")
    return parsed
