"""照片上传相关路由。"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import (
    APIRouter,
    Depends,
    Path,
    Query,
)

from api.dependencies import get_storage, multiple_photos, single_photo
from application.dto import (
    FailedUploadDTO,
    HealthDTO,
    MultipleUploadDTO,
    PhotoDTO,
    PresignUploadRequestDTO,
    PresignUploadResponseDTO,
    UploadedPhotoDTO,
)
from core.logging_config import get_logger
from core.response import (
    Response as ApiResponse,
    success_response,
)
from domain.common.exceptions import StorageOperationException
from infrastructure.external.storage import PHOTO_PREFIX, PhotoFile, PhotoStorage

logger = get_logger(__name__)

router = APIRouter(
    prefix="/upload",
    tags=["Photo Upload"],
)


@router.get(
    "/health",
    summary="健康检查",
    response_model=HealthDTO,
)
async def health():
    return HealthDTO(
        message="Upload service is running",
        timestamp=datetime.now(timezone.utc),
    )


@router.post(
    "/single",
    summary="上传单张照片",
    response_model=ApiResponse[UploadedPhotoDTO],
    response_model_exclude_none=True,
)
async def upload_single(
    photo: PhotoFile = Depends(single_photo),
    storage: PhotoStorage = Depends(get_storage),
):
    result = await storage.upload_photo(photo)
    if not result.success:
        raise StorageOperationException(result.error or "Upload failed")

    return success_response(
        data=UploadedPhotoDTO(key=result.key, url=result.url),
        message="Photo uploaded successfully",
    )


@router.post(
    "/multiple",
    summary="批量上传照片",
    response_model=ApiResponse[MultipleUploadDTO],
    response_model_exclude_none=True,
)
async def upload_multiple(
    photos: list[PhotoFile] = Depends(multiple_photos),
    storage: PhotoStorage = Depends(get_storage),
):
    results = await storage.upload_multiple_photos(photos)

    data = MultipleUploadDTO(
        successful=[
            UploadedPhotoDTO(key=r.key, url=r.url) for r in results if r.success
        ],
        failed=[
            FailedUploadDTO(error=r.error or "Upload failed") for r in results if not r.success
        ],
    )
    return success_response(
        data=data,
        message=f"{len(data.successful)} photos uploaded successfully",
    )


@router.get(
    "/photos",
    summary="照片列表",
    response_model=ApiResponse[list[PhotoDTO]],
    response_model_exclude_none=True,
)
async def list_photos(
    prefix: str = Query(PHOTO_PREFIX, description="键前缀"),
    max_keys: int = Query(100, alias="maxKeys", ge=1, le=1000, description="最多返回条数"),
    storage: PhotoStorage = Depends(get_storage),
):
    objects = await storage.list_photos(prefix=prefix, max_keys=max_keys)
    return success_response(data=[PhotoDTO.from_stored(o) for o in objects])


@router.delete(
    "/photos/{key:path}",
    summary="删除照片",
    response_model=ApiResponse[dict],
    response_model_exclude_none=True,
)
async def delete_photo(
    key: str = Path(..., description="照片键（URL 编码）"),
    storage: PhotoStorage = Depends(get_storage),
):
    result = await storage.delete_photo(key)
    if not result.success:
        raise StorageOperationException(result.error or "Delete failed", details={"key": key})

    return success_response(message="Photo deleted successfully")


@router.post(
    "/presigned",
    summary="生成直传预签名",
    response_model=ApiResponse[PresignUploadResponseDTO],
    response_model_exclude_none=True,
)
async def presigned_upload(
    payload: PresignUploadRequestDTO,
    storage: PhotoStorage = Depends(get_storage),
):
    presigned = await storage.get_presigned_upload_url(
        payload.file_name,
        payload.content_type,
        payload.expires_in,
    )
    return success_response(
        data=PresignUploadResponseDTO(url=presigned.url, key=presigned.key),
        message="Pre-signed URL generated successfully",
    )
