"""
基础状态机定义 - Base State Machines

每个动作由一个状态机驱动:
- start(action): 解析目标、检查前置条件、下发指令, 失败时抛出 ExecutionError
- poll(handle): 返回 PENDING / DONE / FAILED, 不阻塞
- cancel(handle): 超时时调用
- release(handle): 无论结果如何都会调用, 解除事件订阅
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from mobot.common.config import Config
from mobot.common.exceptions import ExecutionError
from mobot.communication.robot_interface import LocomotionController, ManipulationController
from mobot.geometry.placement import PlacementSolver
from mobot.models.action import Action, ActionVerb
from mobot.state.robot_state import RobotStateTracker
from mobot.state.update_aggregator import UpdateAggregator
from mobot.state.world_registry import WorldEntity, WorldRegistry


class PollStatus(Enum):
    """单次轮询结果"""
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExecutionContext:
    """状态机共享的协作者"""
    config: Config
    registry: WorldRegistry
    locomotion: LocomotionController
    manipulator: ManipulationController
    tracker: RobotStateTracker
    aggregator: UpdateAggregator
    placement: PlacementSolver
    clock: Callable[[], float] = time.monotonic


@dataclass(eq=False)
class ActionHandle:
    """一次动作执行的运行期状态"""
    action: Action
    entity: Optional[WorldEntity] = None
    started_at: float = 0.0
    settle_started: Optional[float] = None
    finished: bool = False
    error: Optional[ExecutionError] = None
    data: Dict[str, Any] = field(default_factory=dict)
    cleanups: List[Callable[[], Any]] = field(default_factory=list)

    def fail(self, error: ExecutionError):
        self.error = error
        self.finished = True


class ActionStateMachine(ABC):
    """
    动作状态机基类

    子类声明 verbs 与超时配置项 timeout_key
    """

    verbs: Tuple[ActionVerb, ...] = ()
    timeout_key: str = "execution.step_timeout"

    def __init__(self, context: ExecutionContext):
        self.context = context

    @property
    def config(self) -> Config:
        return self.context.config

    @property
    def timeout(self) -> float:
        return float(self.config.get(self.timeout_key, 15.0))

    def new_handle(self, action: Action, entity: Optional[WorldEntity] = None) -> ActionHandle:
        return ActionHandle(action=action, entity=entity, started_at=self.context.clock())

    @abstractmethod
    async def start(self, action: Action) -> ActionHandle:
        """开始执行动作"""

    @abstractmethod
    def poll(self, handle: ActionHandle) -> PollStatus:
        """查询执行状态"""

    def cancel(self, handle: ActionHandle):
        """超时取消, 默认不做任何事"""

    def release(self, handle: ActionHandle):
        """解除本次执行的所有订阅"""
        while handle.cleanups:
            handle.cleanups.pop()()

    def settled(self, handle: ActionHandle, wait: float) -> bool:
        """完成条件首次满足后, 再等待 wait 秒"""
        now = self.context.clock()
        if handle.settle_started is None:
            handle.settle_started = now
        return now - handle.settle_started >= wait

    def describe(self, handle: ActionHandle) -> str:
        """成功时的结果描述"""
        return str(handle.action)
