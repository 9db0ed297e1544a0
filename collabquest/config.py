"""Configuration management using Pydantic Settings."""
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings, read from the environment (and .env, if present)."""

    model_config = SettingsConfigDict(extra="ignore")

    # AI service
    openrouter_api_key: Optional[str] = Field(None)
    openrouter_url: str = Field("https://openrouter.ai/api/v1/chat/completions")
    llm_model: str = Field("google/gemini-2.0-flash-001")
    llm_timeout: float = Field(30.0, gt=0)

    # Database
    mongodb_url: str = Field("mongodb://localhost:27017")
    mongodb_db: str = Field("collabquest")

    # Simulated teammate replies, in seconds
    peer_reply_delay: float = Field(1.0, ge=0)
    peer_reply_jitter: float = Field(2.0, ge=0)

    # Logging
    log_level: str = Field("INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
