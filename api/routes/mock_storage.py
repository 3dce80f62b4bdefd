"""Mock 存储直传入口：本地开发时预签名 URL 指向这里。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.dependencies import get_storage
from application.dto import UploadedPhotoDTO
from core.response import (
    Response as ApiResponse,
    success_response,
)
from infrastructure.external.storage import PhotoStorage, guess_content_type, unwrap_storage
from infrastructure.external.storage.providers.mock import MockPhotoStorage

router = APIRouter(
    prefix="/mock-storage",
    tags=["Mock Storage"],
)


@router.put(
    "/mock-upload",
    summary="接收 mock 预签名上传",
    response_model=ApiResponse[UploadedPhotoDTO],
    response_model_exclude_none=True,
)
async def mock_upload(
    request: Request,
    key: str = Query(..., description="预签名时分配的键"),
    content_type: Optional[str] = Query(None, alias="contentType"),
    storage: PhotoStorage = Depends(get_storage),
):
    backend = unwrap_storage(storage)
    if not isinstance(backend, MockPhotoStorage):
        raise HTTPException(status_code=404, detail="Not Found")

    body = await request.body()
    mime_type = content_type or request.headers.get("content-type") or guess_content_type(key)
    result = await backend.store_presigned_upload(key, body, mime_type)
    return success_response(
        data=UploadedPhotoDTO(key=result.key, url=result.url),
        message="Photo uploaded successfully",
    )
