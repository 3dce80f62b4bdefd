"""
请求/响应日志中间件

记录每个请求的开始、结束与耗时。上传请求（multipart、图片二进制）
只记录大小；JSON 请求体（如预签名请求）可按配置截断记录。
"""
import json
import time
from typing import Any, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """HTTP 访问日志"""

    SKIP_PATHS = {"/api/upload/health", "/docs", "/redoc", "/openapi.json"}
    # mock 存储静态文件的读取不记录
    SKIP_GET_PREFIXES = ("/mock-storage/",)

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.log_body_by_default: bool = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT
        self.max_body_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if self._skip(request):
            return await call_next(request)

        started = time.perf_counter()
        fields = await self._request_fields(request)
        logger.info("request_started", **fields)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - started, 4),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
                **fields,
            )
            raise

        duration = time.perf_counter() - started
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        self._log_response(response, duration, fields)
        return response

    def _skip(self, request: Request) -> bool:
        path = request.url.path
        if path in self.SKIP_PATHS:
            return True
        return request.method == "GET" and path.startswith(self.SKIP_GET_PREFIXES)

    async def _request_fields(self, request: Request) -> dict:
        fields: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
        }
        if request.query_params:
            fields["query_params"] = dict(request.query_params)

        content_type = request.headers.get("content-type", "").lower()
        content_length = request.headers.get("content-length")
        if content_length:
            fields["content_length"] = int(content_length) if content_length.isdigit() else content_length
        if content_type.startswith(("multipart/", "image/")):
            fields["upload"] = True
        elif "application/json" in content_type and self._should_log_body(request):
            body = await self._json_body(request)
            if body is not None:
                fields["body"] = body

        user_agent = request.headers.get("user-agent")
        if user_agent:
            fields["user_agent"] = user_agent
        return fields

    def _should_log_body(self, request: Request) -> bool:
        # X-Log-Body: true/false 可按请求覆盖默认值
        header = (request.headers.get("X-Log-Body") or "").lower()
        if header in {"true", "1", "yes"}:
            return True
        if header in {"false", "0", "no"}:
            return False
        return bool(self.log_body_by_default and settings.DEBUG)

    async def _json_body(self, request: Request) -> Optional[Any]:
        body = await request.body()
        if not body:
            return None
        snippet = body[: self.max_body_bytes].decode("utf-8", errors="ignore")
        try:
            return json.loads(snippet)
        except ValueError:
            return snippet

    def _log_response(self, response: Response, duration: float, fields: dict) -> None:
        status_code = response.status_code
        event = {"status_code": status_code, "duration": round(duration, 4), **fields}
        if status_code >= 500:
            logger.error("request_server_error", **event)
        elif status_code >= 400:
            logger.warning("request_client_error", **event)
        else:
            logger.info("request_completed", **event)
