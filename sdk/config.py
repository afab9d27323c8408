"""
SDK / console configuration, read from the environment or a .env file.

    CATALOG_API_BASE_URL   root of the catalog REST API
    CATALOG_API_TOKEN      optional bearer token
    CATALOG_TIMEOUT        per-request timeout in seconds
    CATALOG_LOG_LEVEL      logging level for the console entry points
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    API_BASE_URL: str = Field(default="http://127.0.0.1:8085", description="Catalog API root")
    API_TOKEN: Optional[str] = Field(default=None, description="Bearer token for the admin API")
    TIMEOUT: float = Field(default=10.0, description="Request timeout (seconds)")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(env_prefix="CATALOG_", env_file=".env", extra="ignore")


settings = Settings()
