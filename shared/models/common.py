"""
共享数据模型 - 通用类型
"""

from enum import Enum
import uuid


def generate_id(prefix: str = "") -> str:
    """生成唯一 ID"""
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


class RequestPhase(str, Enum):
    """请求生命周期阶段"""
    UNBOUND = "unbound"      # 已创建，可配置
    BOUND = "bound"          # 句柄已创建，之后的配置对句柄无效
    COMPLETED = "completed"
    DISPOSED = "disposed"
