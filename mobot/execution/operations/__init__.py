"""
动作状态机
"""

from mobot.execution.operations.base import (
    PollStatus,
    ExecutionContext,
    ActionHandle,
    ActionStateMachine
)
from mobot.execution.operations.locomotion import MoveStateMachine
from mobot.execution.operations.manipulation import PickStateMachine, PlaceStateMachine
from mobot.execution.operations.devices import OpenDoorStateMachine, SwitchStateMachine

__all__ = [
    "PollStatus",
    "ExecutionContext",
    "ActionHandle",
    "ActionStateMachine",
    "MoveStateMachine",
    "PickStateMachine",
    "PlaceStateMachine",
    "OpenDoorStateMachine",
    "SwitchStateMachine"
]
