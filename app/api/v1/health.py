from fastapi import APIRouter

from app.ai.factory import text_generation_enabled
from app.core.config import load_engine_config

router = APIRouter()


@router.get("/health", summary="Health Check", description="Service status, engine version and AI availability.")
async def health_check():
    engine = load_engine_config().engine
    return {
        "status": "healthy",
        "engine_version": engine.version,
        "prompt_version": engine.prompt_version,
        "ai_enabled": text_generation_enabled(),
    }
