"""
Structlog 日志配置模块

API 进程、采集客户端和 ingest 函数共用同一处理链。
"""
import json
import logging
from typing import Any, List, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings

# 第三方库在 DEBUG 下过于嘈杂
NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpcore", "python_multipart", "multipart")


def _json_dumps(obj, default=None, **kwargs):
    # structlog 会传入 default/sort_keys 等参数
    return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)


def get_renderer(json_logs: bool) -> Any:
    if json_logs:
        return JSONRenderer(serializer=_json_dumps)
    return ConsoleRenderer(colors=True)


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """配置 structlog 并桥接标准库 logging。

    Args:
        level: 日志级别，默认 DEBUG 模式下为 DEBUG，否则 INFO
        json_logs: 是否输出 JSON，默认非 DEBUG 时输出 JSON
    """
    if json_logs is None:
        json_logs = not settings.DEBUG
    if level is None:
        level = "DEBUG" if settings.DEBUG else "INFO"

    shared_pre_chain: List[Any] = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            get_renderer(json_logs),
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取 structlog logger 实例。"""
    return structlog.get_logger(name)
