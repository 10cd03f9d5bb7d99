"""
移动状态机 - Move

IDLE -> MOVING -> IDLE, 持物出发时 PICKING -> MOVING_WHILE_HOLDING -> PICKING
"""

import numpy as np
from loguru import logger

from mobot.common.exceptions import TargetNotFound
from mobot.execution.operations.base import ActionHandle, ActionStateMachine, PollStatus
from mobot.geometry.bounds import Pose, yaw_of
from mobot.models.action import Action, ActionVerb
from mobot.state.robot_state import RobotState


class MoveStateMachine(ActionStateMachine):
    """导航到命名目标附近"""

    verbs = (ActionVerb.MOVE,)
    timeout_key = "execution.step_timeout"

    async def start(self, action: Action) -> ActionHandle:
        ctx = self.context
        target = ctx.registry.find_by_name(action.argument)
        if target is None:
            raise TargetNotFound(f"target not found: {action.argument}")

        robot_pose = ctx.locomotion.pose
        goal = self.compute_goal(target, robot_pose.position)

        facing = yaw_of(target.position - goal)
        goal_pose = Pose(goal, facing if facing is not None else robot_pose.yaw)

        handle = self.new_handle(action, target)
        handle.data["goal"] = goal

        if ctx.tracker.is_holding:
            ctx.tracker.transition(RobotState.MOVING_WHILE_HOLDING, str(action))
            ctx.locomotion.move_while_holding(goal_pose)
        else:
            ctx.tracker.transition(RobotState.MOVING, str(action))
            ctx.locomotion.move_to(goal_pose)

        logger.info(f"导航到 {target.name}: {goal.round(2).tolist()}")
        return handle

    def compute_goal(self, target, robot_position: np.ndarray) -> np.ndarray:
        """
        目的地: 目标包围盒上离机器人最近的点, 保持机器人高度, 再朝机器人退后一步

        目标没有几何时直接使用目标位置
        """
        goal = target.position.copy()
        goal[2] = robot_position[2]

        bounds = self.context.registry.bounds_of(target)
        if bounds is None:
            return goal

        closest = bounds.closest_point(robot_position)
        closest[2] = robot_position[2]

        to_closest = closest - robot_position
        to_closest[2] = 0.0
        length = float(np.linalg.norm(to_closest))
        if length > 1e-3:
            stand_back = float(self.config.get("locomotion.stand_back_distance", 0.6))
            closest = closest - to_closest / length * stand_back
        return closest

    def poll(self, handle: ActionHandle) -> PollStatus:
        if handle.finished:
            return PollStatus.FAILED if handle.error else PollStatus.DONE

        ctx = self.context
        if handle.settle_started is None and not self._arrived(handle):
            return PollStatus.PENDING

        first = handle.settle_started is None
        settled = self.settled(handle, float(self.config.get("locomotion.move_settle_wait", 0.5)))
        if first:
            self._on_arrival(handle)
        if not settled:
            return PollStatus.PENDING

        handle.finished = True
        logger.info(f"到达 {handle.entity.name}")
        return PollStatus.DONE

    def cancel(self, handle: ActionHandle):
        # 超时后回到静止状态, 持物与否不变
        tracker = self.context.tracker
        if tracker.state == RobotState.MOVING_WHILE_HOLDING:
            tracker.transition(RobotState.PICKING, "move timeout")
        elif tracker.state == RobotState.MOVING:
            tracker.transition(RobotState.IDLE, "move timeout")

    def _arrived(self, handle: ActionHandle) -> bool:
        """接近目标且已停稳; 仍在算路或速度未降到阈值以下时不算到达"""
        loco = self.context.locomotion
        extra = float(self.config.get("locomotion.agent_extra_stop", 1.0))
        eps = float(self.config.get("locomotion.velocity_epsilon", 0.05))
        threshold = float(self.config.get("locomotion.arrive_threshold", 2.5))

        if loco.path_pending() or loco.velocity_sq() >= eps:
            return False
        if loco.arrived(extra, eps):
            return True
        return float(np.linalg.norm(loco.position - handle.data["goal"])) <= threshold

    def _on_arrival(self, handle: ActionHandle):
        ctx = self.context
        if ctx.tracker.state == RobotState.MOVING_WHILE_HOLDING:
            ctx.tracker.transition(RobotState.PICKING, f"arrived {handle.entity.name}")
        elif ctx.tracker.state == RobotState.MOVING:
            ctx.tracker.transition(RobotState.IDLE, f"arrived {handle.entity.name}")
        ctx.aggregator.record("move", "robot", position=ctx.locomotion.position)
