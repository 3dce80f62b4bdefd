"""
Request ID 中间件

生成或透传 X-Request-ID，并绑定到 structlog contextvars，
同一请求内的存储日志都会带上 request_id。
"""
import re
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# 透传的 ID 仅限 128 个以内的可打印字符
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(self.HEADER_NAME, "")
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())
        client_ip = client_ip_of(request)

        request.state.request_id = request_id
        request.state.client_ip = client_ip

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, client_ip=client_ip)

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response


def client_ip_of(request: Request) -> str:
    """客户端真实IP（考虑 API Gateway / 反向代理）"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"
