"""
CurlX SDK - 调度模块

负责并发执行请求并在完成时通知请求对象。
"""

from .agent import Agent

__all__ = ["Agent"]
