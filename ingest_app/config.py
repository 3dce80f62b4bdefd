"""Ingest function settings (environment of the serverless runtime)."""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IngestSettings(BaseSettings):
    secret_key: Optional[str] = Field(default=None, validation_alias="SECRET_KEY")
    bucket_name: Optional[str] = Field(default=None, validation_alias="BUCKET_NAME")
    region: Optional[str] = Field(default=None, validation_alias="AWS_REGION")
    key_prefix: str = Field(default="photos/", validation_alias="INGEST_KEY_PREFIX")
    content_type: str = Field(default="image/jpeg", validation_alias="INGEST_CONTENT_TYPE")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_ingest_settings() -> IngestSettings:
    return IngestSettings()
