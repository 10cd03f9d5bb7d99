"""
执行监控

记录动作执行结果与失败统计
"""

from .execution_monitor import ExecutionMonitor, ExecutionRecord

__all__ = [
    "ExecutionMonitor",
    "ExecutionRecord",
]
