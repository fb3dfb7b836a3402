from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # .env is looked up next to the crm_website package, then in the working directory
    _project_dir = Path(__file__).parent.parent.parent
    model_config = SettingsConfigDict(env_file=(_project_dir / ".env", ".env"), extra="ignore")

    APP_NAME: str = "CRM API"
    VERSION: str = "1.0.0"

    # Storage
    DATA_FILE: str = "db.json"

    # Authentication
    SESSION_TTL_HOURS: float = 24
    PASSWORD_MIN_LENGTH: int = 1
    PASSWORD_HASH_ITERATIONS: int = 200_000

    # HTTP
    API_PREFIX: str = "/api"
    HOST: str = "0.0.0.0"
    PORT: int = 10000
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
