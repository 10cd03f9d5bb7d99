"""状态模块: 世界注册表、机器人状态与更新聚合"""
from mobot.state.capabilities import Capability, HasOnState, HasOpenState
from mobot.state.world_registry import InMemoryWorldRegistry, WorldEntity, WorldRegistry
from mobot.state.robot_state import HOLDING_STATES, RobotState, RobotStateTracker
from mobot.state.update_aggregator import UpdateAggregator, UpdateRecord

__all__ = [
    "Capability",
    "HasOnState",
    "HasOpenState",
    "InMemoryWorldRegistry",
    "WorldEntity",
    "WorldRegistry",
    "HOLDING_STATES",
    "RobotState",
    "RobotStateTracker",
    "UpdateAggregator",
    "UpdateRecord"
]
