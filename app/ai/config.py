import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


@dataclass(frozen=True)
class AIConfig:
    enabled: bool
    provider: str
    model: str
    api_key: str
    base_url: str | None
    timeout_s: float
    max_retries: int
    retry_base_delay_s: float
    retry_jitter_s: float

    @property
    def usable(self) -> bool:
        if not self.enabled:
            return False
        return bool(self.api_key) and not _looks_like_placeholder(self.api_key)


def load_ai_config() -> AIConfig:
    return AIConfig(
        enabled=_env_bool("AI_ENABLED", True),
        provider=os.getenv("AI_PROVIDER", "openai").strip().lower(),
        model=(os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip(),
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or "").strip() or None,
        timeout_s=float(os.getenv("LLM_TIMEOUT_S", "30")),
        max_retries=int(os.getenv("LLM_MAX_RETRIES", "2")),
        retry_base_delay_s=float(os.getenv("LLM_RETRY_BASE_DELAY_S", "1.0")),
        retry_jitter_s=float(os.getenv("LLM_RETRY_JITTER_S", "1.0")),
    )
