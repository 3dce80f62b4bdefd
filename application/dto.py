"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field, model_serializer, ConfigDict
from typing import Optional
from datetime import datetime, timezone

from infrastructure.external.storage import StoredObject


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    model_config = ConfigDict(populate_by_name=True)

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class UploadedPhotoDTO(DTOBase):
    """上传成功的照片"""
    key: str
    url: str


class FailedUploadDTO(DTOBase):
    """上传失败的条目"""
    error: str


class MultipleUploadDTO(DTOBase):
    """批量上传结果"""
    successful: list[UploadedPhotoDTO] = Field(default_factory=list)
    failed: list[FailedUploadDTO] = Field(default_factory=list)


class PhotoDTO(DTOBase):
    """照片列表条目"""
    key: str
    url: str
    last_modified: Optional[datetime] = Field(default=None, alias="lastModified")
    size: Optional[int] = None

    @classmethod
    def from_stored(cls, obj: StoredObject) -> "PhotoDTO":
        return cls(key=obj.key, url=obj.url, last_modified=obj.last_modified, size=obj.size)


class PresignUploadRequestDTO(DTOBase):
    """预签名上传请求"""
    file_name: str = Field(..., alias="fileName", min_length=1, description="原始文件名")
    content_type: str = Field(..., alias="contentType", min_length=1, description="MIME 类型")
    expires_in: int = Field(
        default=3600, alias="expiresIn", ge=1, le=7 * 24 * 3600, description="有效期(秒)"
    )


class PresignUploadResponseDTO(DTOBase):
    """预签名上传响应"""
    url: str
    key: str


class HealthDTO(DTOBase):
    """健康检查响应（不使用 data 包裹）"""
    success: bool = True
    message: str
    timestamp: datetime
