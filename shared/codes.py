"""
Business codes shared by the domain exceptions and the HTTP error mapping.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """业务状态码定义（单一来源）"""

    # 请求/上传校验 (1xxxx)
    PARAM_MISSING = 10001
    FILE_TYPE_NOT_ALLOWED = 10004
    FILE_TOO_LARGE = 10005
    TOO_MANY_FILES = 10006

    # 存储/系统 (4xxxx)
    SYSTEM_ERROR = 40000
    STORAGE_ERROR = 40001


__all__ = ["BusinessCode"]
