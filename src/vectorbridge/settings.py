"""Settings for vectorbridge."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorBridgeSettings(BaseSettings):
    """vectorbridge configuration settings."""

    # Qdrant
    QDRANT_URL: Optional[str] = "http://localhost:6333"
    QDRANT_API_KEY: Optional[str] = None
    QDRANT_PATH: Optional[str] = None

    # PGVector
    PGVECTOR_HOST: str = "localhost"
    PGVECTOR_PORT: str = "5432"
    PGVECTOR_DBNAME: str = "vector_db"
    PGVECTOR_USER: str = "postgres"
    PGVECTOR_PASSWORD: str = "postgres"

    # Vector settings
    VECTOR_BACKEND: Literal["qdrant", "pgvector"] = "qdrant"
    VECTOR_COLLECTION_NAME: str = "vector_points"
    VECTOR_METRIC: str = "cosine"
    VECTOR_DIM: int = 1536
    VECTOR_SEARCH_LIMIT: int = 10
    VECTOR_SCROLL_LIMIT: int = 100
    # Points per write request; 0 disables chunking
    VECTOR_BATCH_SIZE: int = 256
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = VectorBridgeSettings()
