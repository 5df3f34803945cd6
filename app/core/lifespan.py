from contextlib import asynccontextmanager
import logging

from app.ai.factory import text_generation_enabled
from app.core.config import load_engine_config
from app.taxonomy import get_default_taxonomy_provider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    # Fail at startup rather than on the first request when engine.yaml is broken.
    engine = load_engine_config()
    get_default_taxonomy_provider()
    logger.info(
        "engine_ready version=%s prompt_version=%s ai_enabled=%s skills=%s",
        engine.engine.version,
        engine.engine.prompt_version,
        text_generation_enabled(),
        len(engine.skill_vocabulary),
    )
    yield
