# config.py
"""Application configuration loaded from the environment / .env"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOGGER_NAME: str = "webqa"
    LOG_FILE_PATH: str = get_log_file_path()
    DEBUG: bool = False  # Include tracebacks in error responses

    # Knowledge base storage (passages.json + vectors.faiss)
    STORAGE_DIR: str = "./storage"
    PASSAGES_FILENAME: str = "passages.json"
    INDEX_FILENAME: str = "vectors.faiss"
    ON_INCONSISTENCY: str = "rebuild"  # Options: rebuild, truncate, refuse

    # Ingestion
    MIN_CONTENT_LENGTH: int = 50  # Shorter text usually means extraction failed

    # Embedding model
    EMBEDDING_PROVIDER: str = "ollama"  # Options: ollama, openai, sentence_transformers
    # Unset means the provider default (see services/factory.py)
    EMBEDDING_MODEL_NAME: Optional[str] = None
    EMBEDDING_DIMENSION: Optional[int] = None

    # Answer generation
    LLM_PROVIDER: str = "ollama"  # Options: ollama, openai
    LLM_MODEL_NAME: Optional[str] = None  # Unset means the provider default
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 500
    ANSWER_TOP_K: int = 3

    # Remote services
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OPENAI_API_KEY: str = ""  # SET IN .env, never logged
    REQUEST_TIMEOUT: int = 60

    # API settings
    MIN_QUESTION_LENGTH: int = 3
    MAX_QUESTION_LENGTH: int = 2000
    CORS_ORIGINS: List[str] = ["*"]

    # App metadata
    APP_TITLE: str = "Web Page Q&A"
    APP_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
