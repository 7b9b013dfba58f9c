"""
CurlX SDK - 主入口包

CurlX SDK 描述并发执行的 HTTP 请求，包括：
- 请求配置的累积与合并
- 传输句柄的延迟创建
- 完成通知

主要组件：
- RequestDescriptor: 请求描述对象
- TransportHandle: 传输句柄
- Agent: 并发请求调度器
"""

from .request import RequestDescriptor
from .config import (
    SDKConfig,
    RequestConfig,
    AgentConfig,
)
from .http.handle import TransportHandle
from .dispatcher.agent import Agent
from .exceptions import (
    CurlXError,
    HandleClosedError,
    AgentNotConnectedError,
    UnknownFieldWarning,
)

__version__ = "0.1.0"

__all__ = [
    # 请求
    "RequestDescriptor",

    # 配置
    "SDKConfig",
    "RequestConfig",
    "AgentConfig",

    # 传输句柄
    "TransportHandle",

    # 调度
    "Agent",

    # 异常
    "CurlXError",
    "HandleClosedError",
    "AgentNotConnectedError",
    "UnknownFieldWarning",
]
