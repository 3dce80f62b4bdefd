"""
统一响应格式定义

所有接口返回 ``{success, message?, data?, error?}``，未设置的字段不输出。
"""
from typing import Any, Optional, Generic, TypeVar
from pydantic import BaseModel
from fastapi.responses import JSONResponse


T = TypeVar("T")


class Response(BaseModel, Generic[T]):
    """统一响应模型"""
    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None


def envelope(response: Response, status_code: int = 200, headers: Optional[dict] = None) -> JSONResponse:
    """序列化为 JSONResponse，省略值为 None 的字段。"""
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def success_response(
    data: Any = None,
    message: Optional[str] = None,
) -> Response:
    """
    创建成功响应

    Args:
        data: 返回数据
        message: 成功消息

    Returns:
        Response: 统一响应对象
    """
    return Response(success=True, message=message, data=data)


def error_response(
    error: str,
    message: Optional[str] = None,
) -> Response:
    """
    创建错误响应

    Args:
        error: 错误描述
        message: 可选的补充消息

    Returns:
        Response: 统一响应对象
    """
    return Response(success=False, message=message, error=error)
