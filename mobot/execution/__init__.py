"""
执行层

调度器、完成检测器与动作状态机
"""

from mobot.execution.completion import CompletionDetector, CompletionResult
from mobot.execution.executor import QueuePolicy, TaskScheduler
from mobot.execution.monitor import ExecutionMonitor
from mobot.execution.operations import (
    ActionHandle,
    ActionStateMachine,
    ExecutionContext,
    PollStatus
)

__all__ = [
    "CompletionDetector",
    "CompletionResult",
    "QueuePolicy",
    "TaskScheduler",
    "ExecutionMonitor",
    "ActionHandle",
    "ActionStateMachine",
    "ExecutionContext",
    "PollStatus"
]
