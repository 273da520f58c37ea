from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    backend_api_url: str = Field("http://localhost:5000/api", alias="BACKEND_API_URL")
    backend_timeout_seconds: float = Field(20.0, alias="BACKEND_TIMEOUT_SECONDS")
    frontend_origin: str = Field("http://localhost:3000", alias="FRONTEND_ORIGIN")
    success_notice_seconds: float = Field(5.0, alias="SUCCESS_NOTICE_SECONDS")
    catalog_fallback_path: Optional[str] = Field(None, alias="CATALOG_FALLBACK_PATH")
    currency: str = Field("PHP", alias="CURRENCY")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[3] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def frontend_origins(self) -> List[str]:
        return [origin.strip() for origin in self.frontend_origin.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
