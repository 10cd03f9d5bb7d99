"""
执行引擎 - Task Scheduler

负责:
- 维护 FIFO 动作队列, 同一时刻只运行一个执行循环
- 按动词分派到状态机, 由完成检测器等待终态
- 任一动作失败或超时即中止, 清空剩余队列
- 队列清空时输出完成报告并刷新批量更新
"""

import asyncio
from collections import deque
from enum import Enum
from typing import Callable, Deque, Dict, Iterable, List, Optional

from loguru import logger

from mobot.common.exceptions import ErrorKind, ExecutionError
from mobot.communication.report_sink import ReportSink, Severity
from mobot.execution.completion import CompletionDetector
from mobot.execution.monitor.execution_monitor import ExecutionMonitor
from mobot.execution.operations.base import ActionStateMachine, ExecutionContext
from mobot.execution.operations.devices import OpenDoorStateMachine, SwitchStateMachine
from mobot.execution.operations.locomotion import MoveStateMachine
from mobot.execution.operations.manipulation import PickStateMachine, PlaceStateMachine
from mobot.models.action import Action, ActionVerb, ExecutionOutcome, OutcomeStatus


class QueuePolicy(Enum):
    """执行中收到新计划时的处理策略"""
    APPEND = "append"    # 追加到正在执行的队列
    REJECT = "reject"    # 拒绝整个计划


OutcomeListener = Callable[[ExecutionOutcome], None]


class TaskScheduler:
    """
    任务调度器

    单一协作式执行上下文: 动作严格按入队顺序执行, 不会重叠
    """

    def __init__(
        self,
        context: ExecutionContext,
        sink: Optional[ReportSink] = None,
        monitor: Optional[ExecutionMonitor] = None,
        detector: Optional[CompletionDetector] = None,
        policy: Optional[QueuePolicy] = None
    ):
        self.context = context
        self.config = context.config
        self.sink = sink

        self.monitor = monitor or ExecutionMonitor(
            max_history=int(self.config.get("execution.max_history", 1000))
        )
        self.detector = detector or CompletionDetector(float(self.config.get("execution.tick", 0.02)))
        self.policy = policy or QueuePolicy(self.config.get("execution.queue_policy", "append"))
        self.step_gap_delay = float(self.config.get("execution.step_gap_delay", 0.2))

        self.queue: Deque[Action] = deque()
        self.machines: Dict[ActionVerb, ActionStateMachine] = {}
        self._register_default_machines()

        self.listeners: List[OutcomeListener] = []
        self._loop_task: Optional[asyncio.Task] = None
        self._step = 0

        logger.info(f"TaskScheduler 初始化完成 (队列策略: {self.policy.value})")

    def _register_default_machines(self):
        """注册默认状态机"""
        for machine_cls in (
            MoveStateMachine,
            PickStateMachine,
            PlaceStateMachine,
            OpenDoorStateMachine,
            SwitchStateMachine
        ):
            self.register_machine(machine_cls(self.context))

    def register_machine(self, machine: ActionStateMachine):
        for verb in machine.verbs:
            self.machines[verb] = machine
            logger.debug(f"注册状态机: {verb.value} -> {type(machine).__name__}")

    def add_listener(self, listener: OutcomeListener):
        if listener not in self.listeners:
            self.listeners.append(listener)

    # ==================== 队列 ====================

    def enqueue(self, action: Action) -> bool:
        """追加单个动作, 必要时启动执行循环; 与计划使用同一队列策略"""
        if not self._accepts(1):
            return False
        self.queue.append(action)
        self._ensure_running()
        return True

    def enqueue_plan(self, actions: Iterable[Action], batch: bool = True) -> bool:
        """
        追加一个计划

        Args:
            actions: 动作序列
            batch: 是否打开批量更新窗口, 计划结束时合并输出

        Returns:
            是否被接受; REJECT 策略下执行中提交会被拒绝
        """
        actions = list(actions)
        if not actions:
            logger.warning("空计划, 忽略")
            return False

        if not self._accepts(len(actions)):
            return False

        if batch:
            self.context.aggregator.begin_batch()

        self.queue.extend(actions)
        logger.info(f"计划入队: {len(actions)} 个动作, 队列长度 {len(self.queue)}")
        self._ensure_running()
        return True

    def _accepts(self, count: int) -> bool:
        if self.is_busy() and self.policy == QueuePolicy.REJECT:
            logger.warning(f"正在执行中, 拒绝新提交 ({count} 个动作)")
            self._report("Already executing a plan.", Severity.WARNING)
            return False
        return True

    def pending_actions(self) -> List[Action]:
        return list(self.queue)

    def is_busy(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def wait_until_idle(self):
        """等待执行循环结束(包括期间追加的动作)"""
        while self.is_busy():
            await asyncio.shield(self._loop_task)

    def _ensure_running(self):
        if self.is_busy():
            return
        self._step = 0
        self._loop_task = asyncio.get_running_loop().create_task(self._run())

    # ==================== 执行循环 ====================

    async def _run(self):
        loop = asyncio.get_running_loop()
        started = loop.time()

        while self.queue:
            action = self.queue.popleft()
            self._step += 1
            outcome = await self.execute(action, self._step)

            if not outcome.succeeded:
                self._abort(outcome)
                return

            # 让出一个调度间隔, 观察者可以看到上一步的结果
            if self.queue and self.step_gap_delay > 0:
                await asyncio.sleep(self.step_gap_delay)

        elapsed = loop.time() - started
        self._report(
            f"Execution COMPLETE ({self._step}/{self._step} steps, {elapsed:.2f}s)",
            Severity.SUCCESS
        )
        logger.info(f"执行完成: {self._step} 个动作, 用时 {elapsed:.2f}s")
        self.context.aggregator.end_batch_and_flush()

    def _abort(self, outcome: ExecutionOutcome):
        dropped = len(self.queue)
        self.queue.clear()
        self._report(
            f"FAILED at step {self._step}: {outcome.action} ({outcome.detail})",
            Severity.ERROR
        )
        logger.error(f"执行中止于第 {self._step} 步: {outcome.action}, 丢弃 {dropped} 个动作")
        self.context.aggregator.end_batch_and_flush()

    async def execute(self, action: Action, step: int = 0) -> ExecutionOutcome:
        """
        执行单个动作并等待终态

        状态机抛出的 ExecutionError 转为 FAILURE, 未预期异常同样转为 FAILURE 并记录日志
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        self.monitor.start_execution(step, action)

        total = step + len(self.queue)
        self._report(f"[{step}/{total}] {action}", Severity.PROGRESS)
        logger.info(f"开始执行动作 [{step}/{total}]: {action}")

        try:
            machine = self.machines.get(action.verb)
            if machine is None:
                raise ExecutionError(f"unknown verb '{action.verb.value}'")

            handle = await machine.start(action)
            result = await self.detector.wait(machine, handle)
            outcome = ExecutionOutcome(
                action=action,
                status=result.status,
                detail=result.detail,
                error_kind=result.error_kind
            )

        except ExecutionError as e:
            outcome = ExecutionOutcome(
                action=action,
                status=OutcomeStatus.FAILURE,
                detail=e.message,
                error_kind=e.kind
            )
        except Exception as e:
            logger.error(f"动作执行异常: {action}: {e}")
            outcome = ExecutionOutcome(
                action=action,
                status=OutcomeStatus.FAILURE,
                detail=str(e),
                error_kind=ErrorKind.INTERNAL
            )

        outcome.duration = loop.time() - started
        self.monitor.record_outcome(outcome)

        if outcome.succeeded:
            self._report(f"[{step}] {action} OK", Severity.SUCCESS)

        for listener in list(self.listeners):
            listener(outcome)

        return outcome

    def _report(self, text: str, severity: Severity):
        if self.sink is not None:
            self.sink.show_message(text, severity)
