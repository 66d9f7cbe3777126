"""
Sentence Builder Service Configuration
"""

from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="sentence-builder-service", env="SERVICE_NAME")  # type: ignore
    SERVICE_VERSION: str = Field(default="1.0.0", env="SERVICE_VERSION")  # type: ignore
    HOST: str = Field(default="0.0.0.0", env="HOST")  # type: ignore
    PORT: int = Field(default=8000, env="PORT")  # type: ignore
    LOG_LEVEL: str = Field(default="info", env="LOG_LEVEL")  # type: ignore
    DEBUG: bool = Field(default=False, env="DEBUG")  # type: ignore

    # ===== CORS =====
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"], env="CORS_ORIGINS"  # type: ignore
    )

    # ===== Generation Defaults =====
    DEFAULT_MAX_WORDS: int = Field(default=20, env="DEFAULT_MAX_WORDS")  # type: ignore
    MAX_WORDS_LIMIT: int = Field(default=500, env="MAX_WORDS_LIMIT")  # type: ignore
    DEFAULT_MAX_SUGGESTIONS: int = Field(default=5, env="DEFAULT_MAX_SUGGESTIONS")  # type: ignore
    DEFAULT_NGRAM_N: int = Field(default=3, env="DEFAULT_NGRAM_N")  # type: ignore
    # n-gram orders stored on import; orders 1-2 are served by the Markov chains
    MIN_NGRAM_N: int = Field(default=3, env="MIN_NGRAM_N")  # type: ignore
    MAX_NGRAM_N: int = Field(default=5, env="MAX_NGRAM_N")  # type: ignore
    RANDOM_SEED: Optional[int] = Field(default=None, env="RANDOM_SEED")  # type: ignore

    # ===== Bootstrap (reload from persisted aggregates) =====
    BOOTSTRAP_STARTER_LIMIT: int = Field(default=100, env="BOOTSTRAP_STARTER_LIMIT")  # type: ignore
    BOOTSTRAP_MAX_STEPS: int = Field(default=30, env="BOOTSTRAP_MAX_STEPS")  # type: ignore
    NGRAM_LOAD_LIMIT: int = Field(default=10000, env="NGRAM_LOAD_LIMIT")  # type: ignore
    NGRAM_REPEAT_CAP: int = Field(default=100, env="NGRAM_REPEAT_CAP")  # type: ignore
    BOOTSTRAP_WALKS_PER_STARTER: int = Field(default=10, env="BOOTSTRAP_WALKS_PER_STARTER")  # type: ignore

    # ===== Storage =====
    STORAGE_BACKEND: Literal["memory", "mongo"] = Field(default="memory", env="STORAGE_BACKEND")  # type: ignore
    MONGODB_URI: str = Field(default="mongodb://localhost:27017", env="MONGODB_URI")  # type: ignore
    MONGODB_DB: str = Field(default="sentence_builder", env="MONGODB_DB")  # type: ignore

    # ===== Import =====
    SUPPORTED_EXTENSIONS: List[str] = Field(
        default=[".txt", ".doc", ".docx", ".pdf"], env="SUPPORTED_EXTENSIONS"  # type: ignore
    )
    PROCESS_NGRAMS: bool = Field(default=True, env="PROCESS_NGRAMS")  # type: ignore
    IMPORT_NGRAM_N: int = Field(default=3, env="IMPORT_NGRAM_N")  # type: ignore

    # >>> pydantic v2 settings config <<<
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()


# Algorithm tags reported in generation results
ALGORITHM_TAGS = {
    1: "first-order",
    2: "second-order",
}


def get_algorithm_tag(order: int) -> str:
    """Get the display tag for a model order"""
    return ALGORITHM_TAGS.get(order, f"n-gram (n={order})")
