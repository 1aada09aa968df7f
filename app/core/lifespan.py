# app/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.db import mongo, redis as r
from app.core.config import get_settings
from app.adapters.llm.factory import build_reasoning_provider
from app.adapters.transcription.whisper import WhisperTranscriber

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo is required
    await mongo.connect()

    # Redis is optional (policy cache only)
    await r.connect()

    # Reasoning provider and transcriber are chosen once per process
    app.state.reasoning_provider = build_reasoning_provider(settings)
    app.state.transcriber = WhisperTranscriber(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_TRANSCRIPTION_MODEL,
        timeout_s=settings.llm_timeout_s,
    )
    logger.info(f"{settings.APP_NAME} started env={settings.APP_ENV} provider={settings.LLM_PROVIDER}")

    # Application runs
    yield

    # --- Shutdown ---
    for name in ("reasoning_provider", "transcriber"):
        try:
            await getattr(app.state, name).aclose()
        except Exception as e:
            logger.warning(f"Closing {name} failed: {e}")

    try:
        await r.disconnect()
    except Exception as e:
        logger.warning(f"Redis disconnect failed: {e}")

    try:
        await mongo.disconnect()
    except Exception as e:
        logger.warning(f"Mongo disconnect failed: {e}")
