"""
CurlX SDK - HTTP 模块

负责传输句柄的创建、复制与执行。
"""

from .handle import TransportHandle

__all__ = [
    "TransportHandle",
]
