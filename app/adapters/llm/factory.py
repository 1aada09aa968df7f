# app/adapters/llm/factory.py

import logging
from app.core.config import Settings
from app.adapters.llm.base import ReasoningProvider

logger = logging.getLogger(__name__)

def build_reasoning_provider(settings: Settings) -> ReasoningProvider:
    """
    Pick the reasoning provider once, at process start (lifespan). The instance
    is stored on app.state and injected from there; nothing caches it globally.
    """
    kind = settings.LLM_PROVIDER
    common = dict(
        timeout_s=settings.llm_timeout_s,
        max_tokens=settings.llm_max_tokens,
        max_retries=settings.llm_max_retries,
    )

    if kind == "openai":
        from app.adapters.llm.openai_provider import OpenAIProvider
        provider: ReasoningProvider = OpenAIProvider(
            api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_RAG_MODEL, **common
        )
    elif kind == "anthropic":
        from app.adapters.llm.anthropic_provider import AnthropicProvider
        provider = AnthropicProvider(
            api_key=settings.ANTHROPIC_API_KEY, model=settings.ANTHROPIC_MODEL, **common
        )
    elif kind == "gemini":
        from app.adapters.llm.gemini_provider import GeminiProvider
        provider = GeminiProvider(
            api_key=settings.GEMINI_API_KEY, model=settings.GEMINI_MODEL, **common
        )
    elif kind == "static":
        from app.adapters.llm.static_provider import StaticProvider
        provider = StaticProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {kind}")

    if kind != "static" and not settings.provider_api_key():
        logger.warning(f"LLM provider '{kind}' has no API key configured; turns will use the safe fallback")
    logger.info(f"LLM provider initialized: {provider.name}")
    return provider
