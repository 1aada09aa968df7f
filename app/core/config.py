from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]
ProviderName = Literal["openai", "anthropic", "gemini", "static"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "TruthModeAssistant"
    DEBUG: bool # ✅ declared
    GIT_SHA: str = "unknown"
    ALLOWED_ORIGINS: str = ""  # CSV

    # Mongo
    MONGO_URI: str # ✅ declared
    MONGO_DB: str # ✅ declared

    # Redis (optional: only caches store policies)
    REDIS_URL: str = ""
    store_policy_cache_ttl: int = 5 * 60       # 5 minutes

    # Reasoning provider, picked once at startup
    LLM_PROVIDER: ProviderName = "openai"
    llm_timeout_s: int = 30                    # seconds, per turn
    llm_max_tokens: int = 2048
    llm_max_retries: int = 1                   # adapter-level schema retries

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_RAG_MODEL: str = "gpt-4o-mini"
    OPENAI_TRANSCRIPTION_MODEL: str = "whisper-1"

    # Anthropic
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"

    # Retrieval / repositories
    repo_timeout_s: int = 5                    # seconds, per repository call
    retrieval_limit: int = 20                  # candidates handed to the LLM
    retrieval_breadth: int = 50                # rows fetched before post-filters
    history_max_messages: int = 10

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    def provider_api_key(self) -> Optional[str]:
        return {
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "gemini": self.GEMINI_API_KEY,
        }.get(self.LLM_PROVIDER)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
