"""
애플리케이션 설정
- DB, Redis, 페이지네이션, 로깅 관련 설정을 관리한다.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 데이터베이스
    DATABASE_URL: str = "sqlite:///ecocycle.db"

    # Redis (없으면 인메모리 큐로 fallback)
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # 검색 API 페이지네이션
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

    # 로깅
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
