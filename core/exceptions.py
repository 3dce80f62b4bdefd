"""
自定义异常映射与全局异常处理器
"""
import uuid
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from starlette import status as http_status

from .response import envelope, error_response
from shared.codes import BusinessCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from infrastructure.external.storage.exceptions import (
    ObjectExistsError,
    StorageError,
    StorageValidationError,
)


def _business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（默认400）。"""
    mapping = {
        BusinessCode.PARAM_MISSING: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.FILE_TYPE_NOT_ALLOWED: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.FILE_TOO_LARGE: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.TOO_MANY_FILES: http_status.HTTP_400_BAD_REQUEST,
        # 删除失败（含 mock 的 "File not found"）统一按存储错误返回 500
        BusinessCode.STORAGE_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    try:
        return mapping.get(BusinessCode(code), http_status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return http_status.HTTP_400_BAD_REQUEST


def _request_id(request: Request) -> str:
    return getattr(getattr(request, "state", object()), "request_id", None) or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI):
    """
    注册全局异常处理器

    Args:
        app: FastAPI应用实例
    """

    logger = get_logger(__name__)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        """处理业务异常"""
        status_code = _business_code_to_http_status(exc.code)
        logger.info(
            "business_exception",
            request_id=_request_id(request),
            error_type=exc.error_type,
            status_code=status_code,
            error=exc.message,
        )
        return envelope(error_response(exc.message), status_code=status_code)

    @app.exception_handler(StorageValidationError)
    async def storage_validation_handler(request: Request, exc: StorageValidationError):
        """存储层校验失败（如预签名类型不允许）"""
        return envelope(error_response(str(exc)), status_code=http_status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(ObjectExistsError)
    async def storage_conflict_handler(request: Request, exc: ObjectExistsError):
        """键已存在，拒绝覆盖"""
        return envelope(error_response(str(exc)), status_code=http_status.HTTP_409_CONFLICT)

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        """存储后端错误统一为 500"""
        logger.error(
            "storage_exception",
            request_id=_request_id(request),
            error=str(exc),
            error_type=type(exc).__name__,
            operation=exc.operation,
        )
        return envelope(
            error_response(str(exc)),
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """处理参数验证异常（缺少字段、类型错误等统一 400）"""
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])
        reason = first_error.get("msg", "unknown")
        message = f"Invalid request: {field}: {reason}" if field else f"Invalid request: {reason}"
        return envelope(
            error_response(message),
            status_code=http_status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理HTTP异常"""
        return envelope(
            error_response(str(exc.detail)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """处理所有未捕获的异常"""
        request_id = _request_id(request)

        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )

        message = str(exc) if app.debug and str(exc) else "Internal server error"
        return envelope(
            error_response(message),
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
