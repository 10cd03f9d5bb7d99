"""
机器人接口 - Robot Interface

执行层消费的控制器接口:
- 移动控制器: 导航到位姿, 提供"是否到达"判定所需的量
- 操作控制器: 抓取/放置, 以 attach/place 边沿事件报告完成
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from mobot.communication.signals import Signal
from mobot.geometry.bounds import Pose, VectorLike
from mobot.state.world_registry import WorldEntity


class LocomotionController(ABC):
    """移动控制器接口"""

    @abstractmethod
    def move_to(self, pose: Pose):
        """空手导航到目标位姿"""

    @abstractmethod
    def move_while_holding(self, pose: Pose):
        """持物导航到目标位姿"""

    @abstractmethod
    def path_pending(self) -> bool:
        """路径是否仍在计算"""

    @abstractmethod
    def has_path(self) -> bool:
        """当前是否有有效路径"""

    @abstractmethod
    def remaining_distance(self) -> float:
        """沿路径剩余距离"""

    @abstractmethod
    def velocity_sq(self) -> float:
        """当前速度平方"""

    @property
    @abstractmethod
    def stopping_distance(self) -> float:
        """停止距离"""

    @property
    @abstractmethod
    def pose(self) -> Pose:
        """机器人当前位姿"""

    @property
    def position(self) -> np.ndarray:
        return self.pose.position

    def arrived(self, extra_stop: float = 0.1, velocity_epsilon: float = 0.05) -> bool:
        """
        到达判定

        路径已算完, 剩余距离不超过停止距离 + 余量, 且无路径或速度接近零
        """
        return (
            not self.path_pending()
            and self.remaining_distance() <= self.stopping_distance + extra_stop
            and (not self.has_path() or self.velocity_sq() < velocity_epsilon)
        )


class ManipulationController(ABC):
    """
    操作控制器接口

    on_attach(entity): 物体吸附到手上的瞬间
    on_place(entity): 物体放到目标上的瞬间
    """

    def __init__(self):
        self.on_attach = Signal("on_attach")
        self.on_place = Signal("on_place")

    @abstractmethod
    def pick(self, entity: WorldEntity):
        """开始抓取, 完成时触发 on_attach"""

    @abstractmethod
    def cancel_pick(self):
        """取消尚未完成的抓取"""

    @abstractmethod
    def is_holding(self) -> bool:
        """手中是否持有物体"""

    @property
    @abstractmethod
    def held_entity(self) -> Optional[WorldEntity]:
        """手中物体"""

    @abstractmethod
    async def face(self, target_position: VectorLike):
        """原地转向目标"""

    @abstractmethod
    def release(
        self,
        position: VectorLike,
        yaw: float,
        container: Optional[WorldEntity] = None
    ) -> Optional[WorldEntity]:
        """
        在给定位姿松手

        从手上分离, 恢复物理交互, 归入 container, 触发 on_place;
        手中无物体时返回 None 且不触发事件
        """
