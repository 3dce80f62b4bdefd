"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class FileMissingException(BusinessException):
    def __init__(self, message: str = "No file uploaded", field: Optional[str] = None):
        super().__init__(
            code=BusinessCode.PARAM_MISSING,
            message=message,
            error_type="FileMissing",
            field=field,
        )


class FileTypeNotAllowedException(BusinessException):
    def __init__(self, mime_type: Optional[str], allowed: list[str]):
        super().__init__(
            code=BusinessCode.FILE_TYPE_NOT_ALLOWED,
            message=f"Invalid file type. Only {', '.join(allowed)} are allowed.",
            error_type="FileTypeNotAllowed",
            details={"mime_type": mime_type, "allowed": list(allowed)},
        )


class FileTooLargeException(BusinessException):
    def __init__(self, size: int, max_size: int):
        super().__init__(
            code=BusinessCode.FILE_TOO_LARGE,
            message=f"File too large: {size} bytes exceeds the {max_size} byte limit",
            error_type="FileTooLarge",
            details={"size": size, "max_size": max_size},
        )


class TooManyFilesException(BusinessException):
    def __init__(self, count: int, max_files: int):
        super().__init__(
            code=BusinessCode.TOO_MANY_FILES,
            message=f"Too many files: at most {max_files} per request",
            error_type="TooManyFiles",
            details={"count": count, "max_files": max_files},
        )


class StorageOperationException(BusinessException):
    """存储后端返回失败结果（非异常）时由路由层抛出。"""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.STORAGE_ERROR,
            message=message,
            error_type="StorageError",
            details=details,
        )
