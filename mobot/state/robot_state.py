"""
机器人状态 - Robot State

机器人是单一共享资源: 任意时刻只有一个 RobotState,
手持物体(HeldObject)只在 PICKING / MOVING_WHILE_HOLDING / PLACING 期间存在
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from loguru import logger

from mobot.common.exceptions import ActuatorRejected
from mobot.state.world_registry import WorldEntity

if TYPE_CHECKING:
    from mobot.communication.robot_interface import ManipulationController


class RobotState(Enum):
    """机器人状态"""
    IDLE = "idle"
    MOVING = "moving"
    MOVING_WHILE_HOLDING = "moving_while_holding"
    PICKING = "picking"          # 已抓起, 手中持有物体
    PLACING = "placing"


HOLDING_STATES = frozenset({
    RobotState.PICKING,
    RobotState.MOVING_WHILE_HOLDING,
    RobotState.PLACING
})


@dataclass
class StateTransition:
    """状态转换记录"""
    from_state: RobotState
    to_state: RobotState
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)


class RobotStateTracker:
    """
    机器人状态跟踪器

    状态只在动作开始或 attach/place 完成事件时改变
    """

    def __init__(self, max_history: int = 200):
        self._state = RobotState.IDLE
        self._held: Optional[WorldEntity] = None
        self.history: List[StateTransition] = []
        self.max_history = max_history

        self._manipulator: Optional['ManipulationController'] = None

        logger.info("RobotStateTracker 初始化完成")

    @property
    def state(self) -> RobotState:
        return self._state

    @property
    def held_object(self) -> Optional[WorldEntity]:
        return self._held

    @property
    def is_holding(self) -> bool:
        return self._held is not None

    def transition(self, new_state: RobotState, reason: str = ""):
        """切换状态, 保证持有物体与状态一致"""
        if new_state in HOLDING_STATES and self._held is None:
            raise ActuatorRejected(f"无法进入 {new_state.value}: 手中没有物体")
        if new_state not in HOLDING_STATES and self._held is not None:
            raise ActuatorRejected(f"无法进入 {new_state.value}: 手中仍持有 {self._held.name}")

        if new_state == self._state:
            return

        record = StateTransition(self._state, new_state, reason)
        self.history.append(record)
        if len(self.history) > self.max_history:
            self.history = self.history[-self.max_history:]

        logger.debug(f"机器人状态: {self._state.value} -> {new_state.value} ({reason})")
        self._state = new_state

    def require(self, *allowed: RobotState, action: str = ""):
        """当前状态不在 allowed 中时拒绝"""
        if self._state not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise ActuatorRejected(
                f"{action or '动作'} 需要状态 [{expected}], 当前为 {self._state.value}"
            )

    # ==================== 操作事件 ====================

    def take_ownership(self, entity: WorldEntity):
        """物体吸附到手上"""
        if self._held is not None and self._held is not entity:
            raise ActuatorRejected(f"已持有 {self._held.name}, 不能再持有 {entity.name}")
        self._held = entity
        self.transition(RobotState.PICKING, f"attach {entity.name}")

    def release_ownership(self) -> Optional[WorldEntity]:
        """物体交还给世界"""
        released = self._held
        self._held = None
        self.transition(RobotState.IDLE, f"place {released.name if released else '-'}")
        return released

    def bind(self, manipulator: 'ManipulationController'):
        """订阅操作器的 attach/place 事件"""
        self.unbind()
        self._manipulator = manipulator
        manipulator.on_attach.connect(self._handle_attach)
        manipulator.on_place.connect(self._handle_place)

    def unbind(self):
        if self._manipulator is not None:
            self._manipulator.on_attach.disconnect(self._handle_attach)
            self._manipulator.on_place.disconnect(self._handle_place)
            self._manipulator = None

    def _handle_attach(self, entity: WorldEntity):
        self.take_ownership(entity)

    def _handle_place(self, entity: WorldEntity):
        self.release_ownership()

    def reset(self):
        self._held = None
        self._state = RobotState.IDLE
        self.history.clear()
