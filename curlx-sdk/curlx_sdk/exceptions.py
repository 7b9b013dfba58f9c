"""
CurlX SDK - 异常与警告
"""


class CurlXError(Exception):
    """CurlX SDK 异常基类"""
    pass


class HandleClosedError(CurlXError):
    """句柄已关闭"""
    pass


class AgentNotConnectedError(CurlXError):
    """Agent 尚未建立会话"""
    pass


class UnknownFieldWarning(UserWarning):
    """访问了未定义的请求字段"""
    pass
