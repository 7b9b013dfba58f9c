"""
CurlX SDK - 配置管理
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any

import sys
sys.path.insert(0, str(__file__).rsplit("/", 3)[0])
from shared.models import Knob


class RequestConfig(BaseModel):
    """单个请求的基础选项"""
    return_transfer: bool = Field(True, description="返回响应体而不是输出")
    no_signal: bool = Field(True, description="忽略终止信号")
    follow_location: bool = Field(True, description="跟随重定向")

    def baseline_options(self) -> Dict[Any, Any]:
        """构造请求创建时的默认选项表"""
        return {
            Knob.RETURN_TRANSFER: self.return_transfer,
            Knob.NO_SIGNAL: self.no_signal,
            Knob.FOLLOW_LOCATION: self.follow_location,
        }


class AgentConfig(BaseModel):
    """Agent 调度器配置"""
    max_concurrent: int = Field(10, description="最大并发请求数")

    # 连接池
    connection_limit: int = Field(100, description="最大连接数")
    keepalive_timeout: int = Field(30, description="Keep-alive 超时（秒）")

    # 新建请求的默认值
    default_timeout_ms: Optional[int] = Field(None, description="默认超时（毫秒）")
    default_headers: Dict[str, str] = Field(default_factory=dict, description="默认请求头")
    default_options: Dict[str, Any] = Field(default_factory=dict, description="默认传输选项")


class SDKConfig(BaseModel):
    """CurlX SDK 总配置"""
    service_name: str = Field("curlx-sdk", description="服务名称")

    request: RequestConfig = Field(default_factory=RequestConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)

    log_level: str = Field("INFO", description="日志级别")

    @classmethod
    def from_env(cls) -> "SDKConfig":
        """从环境变量加载配置"""
        import os

        timeout = os.getenv("CURLX_DEFAULT_TIMEOUT_MS")

        return cls(
            service_name=os.getenv("CURLX_SERVICE_NAME", "curlx-sdk"),
            agent=AgentConfig(
                max_concurrent=int(os.getenv("CURLX_MAX_CONCURRENT", "10")),
                default_timeout_ms=int(timeout) if timeout else None,
            ),
            log_level=os.getenv("CURLX_LOG_LEVEL", "INFO"),
        )
