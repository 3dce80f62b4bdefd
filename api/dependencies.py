"""
API依赖项 - 上传校验与存储注入

上传文件在进入路由前完成校验：MIME 白名单、大小上限、数量上限。
文件内容直接读入内存，不落临时文件。
"""
from typing import Optional

from fastapi import File, UploadFile

from core.config import settings
from domain.common.exceptions import (
    FileMissingException,
    FileTooLargeException,
    FileTypeNotAllowedException,
    TooManyFilesException,
)
from infrastructure.external.storage import PhotoFile, get_storage

__all__ = ["get_storage", "single_photo", "multiple_photos", "read_photo"]


async def read_photo(upload: UploadFile) -> PhotoFile:
    """读取并校验单个上传文件。"""
    rules = settings.storage
    mime_type = upload.content_type or ""
    if mime_type not in rules.allowed_mime_types:
        raise FileTypeNotAllowedException(mime_type, rules.allowed_mime_types)

    data = await upload.read()
    if len(data) > rules.max_file_size:
        raise FileTooLargeException(len(data), rules.max_file_size)

    return PhotoFile(
        content=data,
        mime_type=mime_type,
        original_name=upload.filename or "",
    )


async def single_photo(
    photo: Optional[UploadFile] = File(None, description="要上传的照片"),
) -> PhotoFile:
    if photo is None:
        raise FileMissingException("No file uploaded", field="photo")
    return await read_photo(photo)


async def multiple_photos(
    photos: Optional[list[UploadFile]] = File(None, description="要上传的照片（最多10张）"),
) -> list[PhotoFile]:
    if not photos:
        raise FileMissingException("No files uploaded", field="photos")

    max_files = settings.storage.max_files_per_request
    if len(photos) > max_files:
        raise TooManyFilesException(len(photos), max_files)

    return [await read_photo(p) for p in photos]
