"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Optional


DEFAULT_ALLOWED_MIME_TYPES = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
]


def _split_list(v):
    """允许 JSON 字符串或逗号分隔字符串两种格式。"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        s = v.strip()
        if s.startswith("[") and s.endswith("]"):
            import json
            try:
                arr = json.loads(s)
                if isinstance(arr, list):
                    return arr
            except ValueError:
                pass
        if "," in s:
            return [item.strip() for item in s.split(",") if item.strip()]
        return [s] if s else []
    return v


class StorageSettings(BaseModel):
    # True: 本地文件系统 mock；False: 真实 S3
    use_mock: bool = False
    bucket: Optional[str] = None
    region: Optional[str] = "us-east-1"
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None
    # S3 specific
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_acl: Optional[str] = "public-read"
    # Mock storage specific
    local_base_path: str = "./mock-storage"
    # Upload limits
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )
    max_file_size: int = 5 * 1024 * 1024  # 5MB
    max_files_per_request: int = 10
    timeout: int = 30
    enable_ssl: bool = True

    @field_validator("allowed_mime_types", mode="before")
    @classmethod
    def _parse_mime_types(cls, v):
        return _split_list(v)


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Photo Upload API")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)

    # CORS配置
    CORS_ORIGINS: Annotated[list, NoDecode] = Field(default=["*"])

    storage: StorageSettings = Field(default_factory=StorageSettings)

    # 日志/请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        return _split_list(v)


settings = Settings()
