from __future__ import annotations

import logging

from app.ai.config import AIConfig, load_ai_config
from app.ai.providers.openai_provider import OpenAIProvider
from app.ai.types import TextGenerator

logger = logging.getLogger(__name__)


def text_generation_enabled(cfg: AIConfig | None = None) -> bool:
    return (cfg or load_ai_config()).usable


def get_text_generator() -> TextGenerator | None:
    """Return the configured generator, or None when AI is disabled so callers take the heuristic path."""
    cfg = load_ai_config()
    if not cfg.usable:
        logger.info("text_generation_disabled provider=%s enabled=%s", cfg.provider, cfg.enabled)
        return None

    if cfg.provider == "openai":
        return OpenAIProvider(
            model=cfg.model,
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout_s=cfg.timeout_s,
        )

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")
