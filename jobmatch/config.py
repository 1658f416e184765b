"""
Service configuration loaded from environment variables
"""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    """Runtime settings for the matching service"""

    # Text-generation backend
    ollama_base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    llm_model: str = Field(default="llama3.1:8b", description="LLM model name")
    llm_timeout: int = Field(default=60, ge=1, le=600, description="LLM request timeout in seconds")

    # External resume parser (disabled unless an API key is set)
    resume_parser_url: str = Field(default="https://api.resumeparser.io")
    resume_parser_api_key: Optional[str] = Field(default=None)
    resume_parser_timeout: int = Field(default=30, ge=1, le=300)

    # Storage
    mongo_details: str = Field(default="mongodb://localhost:27017")
    db_name: str = Field(default="job_portal_ai")

    # Recommendations
    recommendation_pool_size: int = Field(default=100, ge=1, description="Fixed pool cap per ranking call")
    default_limit: int = Field(default=10, ge=1)
    default_min_score: int = Field(default=60, ge=0, le=101)
    max_concurrent_scoring: int = Field(default=5, ge=1, le=50)

    # Uploads
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, ge=1)


def _env(name: str, default=None):
    value = os.getenv(name)
    return value if value not in (None, "") else default


@lru_cache()
def get_settings() -> Settings:
    """Build settings from the environment (cached for the process)"""
    values = {
        "ollama_base_url": _env("OLLAMA_BASE_URL"),
        "llm_model": _env("LLM_MODEL"),
        "llm_timeout": _env("LLM_TIMEOUT"),
        "resume_parser_url": _env("RESUME_PARSER_URL"),
        "resume_parser_api_key": _env("RESUME_PARSER_API_KEY"),
        "resume_parser_timeout": _env("RESUME_PARSER_TIMEOUT"),
        "mongo_details": _env("MONGO_DETAILS"),
        "db_name": _env("DB_NAME"),
        "recommendation_pool_size": _env("RECOMMENDATION_POOL_SIZE"),
        "default_limit": _env("RECOMMENDATION_LIMIT"),
        "default_min_score": _env("MATCH_SCORE_THRESHOLD"),
        "max_concurrent_scoring": _env("MAX_CONCURRENT_SCORING"),
        "max_upload_bytes": _env("MAX_UPLOAD_BYTES"),
    }
    return Settings(**{k: v for k, v in values.items() if v is not None})
