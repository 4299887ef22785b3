"""
애플리케이션 설정 (Pydantic Settings).

모든 값은 ORGACCESS_ 접두사를 가진 환경 변수로 덮어쓸 수 있습니다.
(예: ORGACCESS_DATABASE_URL, ORGACCESS_MAX_PAGE_SIZE)
"""
import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """orgaccess 전역 설정."""

    model_config = SettingsConfigDict(env_prefix="ORGACCESS_", env_file=".env", extra="ignore")

    database_url: str = Field(default="sqlite:///orgaccess.db", description="SQLAlchemy connection URL")
    database_echo: bool = Field(default=False, description="Echo SQL queries")

    default_page_size: int = Field(default=50, ge=1)
    max_page_size: int = Field(default=200, ge=1, le=1000)

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    host: str = Field(default="")
    port: int = Field(default=8000, ge=1, le=65535)


@lru_cache
def get_settings() -> Settings:
    """캐시된 설정 인스턴스를 반환합니다."""
    return Settings()


def configure_logging(settings: Settings = None) -> None:
    """설정된 레벨과 포맷으로 루트 로거를 한 번 구성합니다."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)
