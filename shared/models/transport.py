"""
共享数据模型 - 传输层选项与完成元数据
"""

from pydantic import BaseModel, Field
from typing import Optional, Any
from enum import Enum


class Knob(str, Enum):
    """传输选项（句柄配置项）"""
    RETURN_TRANSFER = "return_transfer"  # 保留响应体，而不是输出到 stdout
    NO_SIGNAL = "no_signal"
    FOLLOW_LOCATION = "follow_location"
    MAX_REDIRS = "max_redirs"
    POST = "post"
    POST_FIELDS = "post_fields"
    HTTP_HEADER = "http_header"
    TIMEOUT_MS = "timeout_ms"
    CUSTOM_REQUEST = "custom_request"
    USER_AGENT = "user_agent"

    @classmethod
    def coerce(cls, key: Any) -> Any:
        """将字符串键转换为 Knob，无法识别的键原样返回"""
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            return key


class HandleInfo(BaseModel):
    """句柄完成元数据

    完成前 http_code 为 0，total_time 为 0.0
    """
    url: Optional[str] = None
    effective_url: Optional[str] = None
    http_code: int = Field(0, description="HTTP 状态码")
    total_time: float = Field(0.0, description="总耗时（秒）")
    content_type: Optional[str] = None
    error: Optional[str] = Field(None, description="传输层错误信息")
