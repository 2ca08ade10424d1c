from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):

    AWS_REGION: str = "us-east-1"
    AWS_PROFILE: str | None = None
    DYNAMODB_TABLE_NAME: str = "menorah-live"
    DYNAMODB_ENDPOINT_URL: str | None = None  # DynamoDB Local during development
    DYNAMODB_CREATE_TABLE: bool = False

    PREMIUM_WORD_POLICY: Literal["strict", "advisory"] = "strict"

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()
