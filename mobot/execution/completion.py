"""
完成检测器 - Completion Detector

按调度 tick 协作式地轮询状态机, 直到终态或截止时间
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from mobot.common.exceptions import ErrorKind, ExecutionError, StepTimeout
from mobot.execution.operations.base import ActionHandle, ActionStateMachine, PollStatus
from mobot.models.action import OutcomeStatus


@dataclass
class CompletionResult:
    """检测结果"""
    status: OutcomeStatus
    detail: str = ""
    error_kind: Optional[ErrorKind] = None
    elapsed: float = 0.0
    polls: int = 0


class CompletionDetector:
    """
    完成检测器

    两次 poll 之间至少间隔一个 tick; 使用事件循环的单调时钟计算截止时间
    """

    def __init__(self, tick: float = 0.02):
        self.tick = max(float(tick), 0.0)

    async def wait(
        self,
        machine: ActionStateMachine,
        handle: ActionHandle,
        timeout: Optional[float] = None
    ) -> CompletionResult:
        """
        等待动作进入终态

        超时时调用 machine.cancel(handle); 无论结果如何都会调用 machine.release(handle)
        """
        loop = asyncio.get_running_loop()
        timeout = machine.timeout if timeout is None else timeout
        started = loop.time()
        deadline = started + timeout
        polls = 0

        try:
            while True:
                polls += 1
                status = machine.poll(handle)

                if status == PollStatus.DONE:
                    return CompletionResult(
                        status=OutcomeStatus.SUCCESS,
                        detail=machine.describe(handle),
                        elapsed=loop.time() - started,
                        polls=polls
                    )

                if status == PollStatus.FAILED:
                    error = handle.error or ExecutionError("action failed")
                    return CompletionResult(
                        status=OutcomeStatus.FAILURE,
                        detail=error.message,
                        error_kind=error.kind,
                        elapsed=loop.time() - started,
                        polls=polls
                    )

                if loop.time() >= deadline:
                    logger.warning(f"{handle.action} 超时 ({timeout:.2f}s)")
                    machine.cancel(handle)
                    error = StepTimeout("timeout")
                    return CompletionResult(
                        status=OutcomeStatus.TIMEOUT,
                        detail=error.message,
                        error_kind=error.kind,
                        elapsed=loop.time() - started,
                        polls=polls
                    )

                await asyncio.sleep(self.tick)
        finally:
            machine.release(handle)
