"""
Application configuration using Pydantic Settings
"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "TalentLens ATS"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Tokens are issued by the identity service; we only verify them
    SECRET_KEY: str = Field(default="change-this-in-production-min-32-characters-required", min_length=32)
    ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 3600
    CANDIDATE_CACHE_TTL: int = 1800  # 30 minutes

    # Async Tasks
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    CELERY_WORKER_CONCURRENCY: int = 4
    RESUME_PARSE_QUEUE: str = "resume.parse"
    RESUME_PARSE_DEAD_LETTER_QUEUE: str = "resume.parse.dlq"
    CANDIDATE_VECTORIZE_QUEUE: str = "candidate.vectorize"
    MATCHING_QUEUE: str = "matching"
    MAINTENANCE_QUEUE: str = "maintenance"

    # Ingestion pipeline
    RESUME_PARSE_MAX_RETRIES: int = 3
    RESUME_PARSE_RETRY_DELAYS: List[int] = [10, 30, 60]  # seconds, per attempt
    IDEMPOTENCY_TTL_HOURS: int = 2
    TASK_STATUS_TTL_HOURS: int = 24
    DEDUP_TTL_DAYS: int = 7
    MIN_RESUME_TEXT_LENGTH: int = 20

    # AI/LLM Configuration
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 60.0
    AI_TEMPERATURE: float = 0.0
    AI_MAX_TOKENS: int = 4000
    RESUME_PROMPT_MAX_CHARS: int = 12000

    # Embeddings
    # Provider: "openai" (API) or "huggingface" (local sentence-transformers)
    EMBEDDING_PROVIDER: str = "openai"
    EMBEDDING_MODEL: str = "text-embedding-3-large"
    HUGGINGFACE_EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBEDDING_DIMENSION: int = 1024
    EMBEDDING_MAX_TEXT_LENGTH: int = 6000

    # Vector index (Milvus)
    MILVUS_URI: str = "http://localhost:19530"
    MILVUS_TOKEN: Optional[str] = None
    MILVUS_COLLECTION: str = "candidate_vectors"
    MILVUS_NLIST: int = 128
    MILVUS_NPROBE: int = 16
    VECTOR_RECONCILE_INTERVAL_SECONDS: int = 3600

    # Match scoring
    MATCH_SEMANTIC_TOP_K: int = 50
    SEMANTIC_ABSENT_BASELINE: float = 20.0  # candidate not in top-K
    SEMANTIC_ERROR_BASELINE: float = 50.0  # embedding/index unavailable

    # Semantic search
    SEARCH_DEFAULT_TOP_K: int = 10
    SEARCH_DEFAULT_MIN_SCORE: float = 0.3

    # File Upload
    MAX_UPLOAD_SIZE_MB: int = 10
    UPLOAD_DIR: str = "./uploads"
    MAX_BATCH_UPLOAD_FILES: int = 20
    MAX_BATCH_UPLOADS_PER_MINUTE: int = 5

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # Observability
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        return self.CORS_ORIGINS

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
