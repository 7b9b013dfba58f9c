"""
共享数据模型包
"""

from .common import (
    RequestPhase,
    generate_id,
)

from .transport import (
    Knob,
    HandleInfo,
)

__all__ = [
    # Common
    "RequestPhase",
    "generate_id",

    # Transport
    "Knob",
    "HandleInfo",
]
