"""
仿真机器人 - Simulated Robot

内存中的移动/操作控制器实现, 用于测试与演示:
- SimulatedLocomotion: 基于时间的运动学插值, 带路径计算延迟
- SimulatedManipulator: 转向目标后延时吸附, 松手时恢复物理并归入容器
"""

import asyncio
import math
import time
from typing import Callable, Optional

import numpy as np
from loguru import logger

from mobot.communication.robot_interface import LocomotionController, ManipulationController
from mobot.geometry.bounds import Pose, VectorLike, as_vector, yaw_of
from mobot.state.world_registry import InMemoryWorldRegistry, WorldEntity


Clock = Callable[[], float]


class SimulatedLocomotion(LocomotionController):
    """
    仿真移动控制器

    机器人位姿写入共享的 body, 每次查询时按时间推进
    """

    def __init__(
        self,
        body: Pose,
        speed: float = 2.0,
        path_delay: float = 0.05,
        stopping_distance: float = 0.1,
        clock: Optional[Clock] = None
    ):
        self.body = body
        self.speed = speed
        self.path_delay = path_delay
        self._stopping_distance = stopping_distance
        self.clock = clock or time.monotonic

        self._start: Optional[np.ndarray] = None
        self._goal: Optional[np.ndarray] = None
        self._start_time = 0.0
        self.holding_mode = False

        logger.info(f"SimulatedLocomotion 初始化完成 (速度 {speed} m/s)")

    def move_to(self, pose: Pose):
        self._begin(pose, holding=False)

    def move_while_holding(self, pose: Pose):
        self._begin(pose, holding=True)

    def _begin(self, pose: Pose, holding: bool):
        self._advance()
        self._start = self.body.position.copy()
        self._goal = pose.position.copy()
        self._start_time = self.clock()
        self.holding_mode = holding

        heading = yaw_of(self._goal - self._start)
        if heading is not None:
            self.body.yaw = heading

        logger.debug(f"导航开始: {self._start.round(2).tolist()} -> {self._goal.round(2).tolist()}")

    def _progress(self) -> float:
        if self._goal is None:
            return 1.0
        elapsed = self.clock() - self._start_time - self.path_delay
        if elapsed <= 0.0:
            return 0.0
        distance = float(np.linalg.norm(self._goal - self._start))
        if distance < 1e-9 or self.speed <= 0.0:
            return 1.0
        return min(1.0, elapsed * self.speed / distance)

    def _advance(self):
        if self._goal is None:
            return
        progress = self._progress()
        self.body.position = self._start + (self._goal - self._start) * progress
        if progress >= 1.0:
            self._start = None
            self._goal = None

    def path_pending(self) -> bool:
        return self._goal is not None and self.clock() - self._start_time < self.path_delay

    def has_path(self) -> bool:
        self._advance()
        return self._goal is not None

    def remaining_distance(self) -> float:
        self._advance()
        if self._goal is None:
            return 0.0
        return float(np.linalg.norm(self._goal - self.body.position))

    def velocity_sq(self) -> float:
        if self._goal is None or self.path_pending():
            return 0.0
        return self.speed * self.speed if self._progress() < 1.0 else 0.0

    @property
    def stopping_distance(self) -> float:
        return self._stopping_distance

    @property
    def pose(self) -> Pose:
        self._advance()
        return self.body


class SimulatedManipulator(ManipulationController):
    """
    仿真操作控制器

    pick: 转向目标 → 等待 pick_attach_delay → 吸附并触发 on_attach
    """

    def __init__(
        self,
        registry: InMemoryWorldRegistry,
        body: Pose,
        pick_attach_delay: float = 2.2,
        rotate_speed_deg: float = 360.0,
        facing_angle_threshold: float = 5.0,
        hand_offset: VectorLike = (0.3, 0.0, 0.9)
    ):
        super().__init__()
        self.registry = registry
        self.body = body
        self.pick_attach_delay = pick_attach_delay
        self.rotate_speed_deg = rotate_speed_deg
        self.facing_angle_threshold = facing_angle_threshold
        self.hand_offset = as_vector(hand_offset)

        self._held: Optional[WorldEntity] = None
        self._pick_task: Optional[asyncio.Task] = None
        self.last_placed: Optional[WorldEntity] = None

        logger.info("SimulatedManipulator 初始化完成")

    def is_holding(self) -> bool:
        return self._held is not None

    @property
    def held_entity(self) -> Optional[WorldEntity]:
        return self._held

    def pick(self, entity: WorldEntity):
        if self.is_holding() or entity is None:
            return
        self.cancel_pick()
        self._pick_task = asyncio.get_running_loop().create_task(self._face_then_pick(entity))

    def cancel_pick(self):
        if self._pick_task is not None and not self._pick_task.done():
            self._pick_task.cancel()
            logger.debug("取消未完成的抓取")
        self._pick_task = None

    async def _face_then_pick(self, entity: WorldEntity):
        await self.face(entity.position)
        await asyncio.sleep(self.pick_attach_delay)
        self._attach(entity)

    async def face(self, target_position: VectorLike):
        direction = as_vector(target_position) - self.body.position
        target_yaw = yaw_of(direction)
        if target_yaw is None:
            return

        diff = math.degrees(math.atan2(
            math.sin(target_yaw - self.body.yaw),
            math.cos(target_yaw - self.body.yaw)
        ))
        if abs(diff) > self.facing_angle_threshold and self.rotate_speed_deg > 0:
            await asyncio.sleep(abs(diff) / self.rotate_speed_deg)
        self.body.yaw = target_yaw

    def _attach(self, entity: WorldEntity):
        self._held = entity
        entity.physics_enabled = False
        self.registry.reparent(entity, None)

        c, s = math.cos(self.body.yaw), math.sin(self.body.yaw)
        hx, hy, hz = self.hand_offset
        hand = self.body.position + np.array([c * hx - s * hy, s * hx + c * hy, hz])
        entity.set_pose(hand, self.body.yaw)

        logger.info(f"物体已吸附: {entity.name}")
        self.on_attach.emit(entity)

    def release(
        self,
        position: VectorLike,
        yaw: float,
        container: Optional[WorldEntity] = None
    ) -> Optional[WorldEntity]:
        obj = self._held
        if obj is None:
            return None

        obj.set_pose(position, yaw)
        obj.physics_enabled = True
        if container is not None:
            self.registry.reparent(obj, container)

        self._held = None
        self.last_placed = obj
        logger.info(f"物体已放下: {obj.name}")
        self.on_place.emit(obj)
        return obj

    def drop(self) -> Optional[WorldEntity]:
        """物体意外脱手(不触发 place 事件)"""
        obj = self._held
        if obj is not None:
            obj.physics_enabled = True
            self._held = None
            logger.warning(f"物体脱手: {obj.name}")
        return obj
