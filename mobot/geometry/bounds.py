"""
几何基础类型 - 轴对齐包围盒与位姿

坐标约定: 右手系, z 轴向上, yaw 绕 +z 旋转。
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

import numpy as np


VectorLike = Union[Sequence[float], np.ndarray]

UP = np.array([0.0, 0.0, 1.0])


def as_vector(value: VectorLike) -> np.ndarray:
    """转换为 shape (3,) 的 float 数组"""
    vec = np.asarray(value, dtype=float).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"需要三维向量, 实际: {vec.shape}")
    return vec


def forward_of(yaw: float) -> np.ndarray:
    """yaw 对应的前向单位向量"""
    return np.array([math.cos(yaw), math.sin(yaw), 0.0])


def right_of(yaw: float) -> np.ndarray:
    """yaw 对应的右向单位向量 (前向顺时针旋转90度)"""
    return np.array([math.sin(yaw), -math.cos(yaw), 0.0])


def yaw_of(direction: VectorLike) -> Optional[float]:
    """水平方向向量的 yaw, 向量过短时返回 None"""
    d = as_vector(direction)
    if d[0] * d[0] + d[1] * d[1] < 1e-12:
        return None
    return math.atan2(d[1], d[0])


@dataclass
class Pose:
    """位姿: 位置 + yaw"""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    yaw: float = 0.0

    def __post_init__(self):
        self.position = as_vector(self.position)

    @property
    def forward(self) -> np.ndarray:
        return forward_of(self.yaw)

    @property
    def right(self) -> np.ndarray:
        return right_of(self.yaw)

    def copy(self) -> 'Pose':
        return Pose(self.position.copy(), self.yaw)


@dataclass
class AxisAlignedBox:
    """
    轴对齐包围盒 (世界坐标)

    以 min/max 角点表示
    """
    min: np.ndarray
    max: np.ndarray

    def __post_init__(self):
        self.min = as_vector(self.min)
        self.max = as_vector(self.max)
        if np.any(self.min > self.max):
            raise ValueError(f"包围盒角点非法: min={self.min}, max={self.max}")

    @classmethod
    def from_center_extents(cls, center: VectorLike, extents: VectorLike) -> 'AxisAlignedBox':
        """由中心和半尺寸创建"""
        c = as_vector(center)
        e = np.abs(as_vector(extents))
        return cls(c - e, c + e)

    @classmethod
    def from_center_size(cls, center: VectorLike, size: VectorLike) -> 'AxisAlignedBox':
        return cls.from_center_extents(center, as_vector(size) / 2.0)

    @classmethod
    def union_of(cls, boxes: Iterable['AxisAlignedBox']) -> Optional['AxisAlignedBox']:
        """多个包围盒的并集, 输入为空时返回 None"""
        result = None
        for box in boxes:
            result = box.copy() if result is None else result.union(box)
        return result

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    @property
    def extents(self) -> np.ndarray:
        return (self.max - self.min) / 2.0

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    def copy(self) -> 'AxisAlignedBox':
        return AxisAlignedBox(self.min.copy(), self.max.copy())

    def union(self, other: 'AxisAlignedBox') -> 'AxisAlignedBox':
        return AxisAlignedBox(np.minimum(self.min, other.min), np.maximum(self.max, other.max))

    def translated(self, offset: VectorLike) -> 'AxisAlignedBox':
        o = as_vector(offset)
        return AxisAlignedBox(self.min + o, self.max + o)

    def inflated(self, amount: float) -> 'AxisAlignedBox':
        """各方向扩张 amount (负值为收缩, 最多收缩到中心)"""
        e = np.maximum(self.extents + amount, 0.0)
        return AxisAlignedBox.from_center_extents(self.center, e)

    def half_along(self, direction: VectorLike) -> float:
        """包围盒沿某方向的半宽"""
        d = as_vector(direction)
        norm = np.linalg.norm(d)
        if norm < 1e-12:
            return 0.0
        d = d / norm
        return float(np.dot(np.abs(d), self.extents))

    def contains(self, point: VectorLike, tolerance: float = 1e-9) -> bool:
        p = as_vector(point)
        return bool(np.all(p >= self.min - tolerance) and np.all(p <= self.max + tolerance))

    def contains_xy(self, point: VectorLike, tolerance: float = 1e-9) -> bool:
        p = as_vector(point)
        return bool(np.all(p[:2] >= self.min[:2] - tolerance) and np.all(p[:2] <= self.max[:2] + tolerance))

    def closest_point(self, point: VectorLike) -> np.ndarray:
        """包围盒上离 point 最近的点"""
        return np.clip(as_vector(point), self.min, self.max)
