"""
放置求解器 - Placement Solver

给定手持物体与目标表面的包围盒, 计算物体在目标上表面的最终位姿:
1. 把机器人方向投影到目标的局部 right/forward 轴, 选择靠近机器人的一侧
2. 将局部偏移夹紧, 使物体投影(加 margin)保持在上表面范围内
3. 可选: 从上方向下探测修正表面高度, 只接受命中目标自身或其子部件
4. 物体包围盒中心位于表面之上 半高 + margin, 保留 pivot 到包围盒中心的偏移
5. 可选: yaw 对齐目标 forward 轴, 否则保持物体当前朝向
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from loguru import logger

from mobot.geometry.bounds import (
    AxisAlignedBox,
    Pose,
    UP,
    VectorLike,
    as_vector,
    yaw_of
)


@dataclass
class ProbeHit:
    """向下探测的命中结果"""
    point: np.ndarray
    entity_name: str


# probe(origin, max_distance) -> Optional[ProbeHit]
SurfaceProbe = Callable[[np.ndarray, float], Optional[ProbeHit]]


@dataclass
class PlacementSolution:
    """放置结果"""
    position: np.ndarray        # 物体 pivot 的最终位置
    yaw: float
    bounds_center: np.ndarray   # 物体包围盒中心的最终位置
    surface_height: float
    local_x: float              # 沿目标 right 轴的偏移
    local_z: float              # 沿目标 forward 轴的偏移

    def to_dict(self):
        return {
            "position": self.position.tolist(),
            "yaw": self.yaw,
            "bounds_center": self.bounds_center.tolist(),
            "surface_height": self.surface_height
        }


def _clamp_symmetric(value: float, limit: float) -> float:
    # 物体比表面还宽时 limit 为负, 收敛到中线
    if limit <= 0.0:
        return 0.0
    return float(np.clip(value, -limit, limit))


def solve_placement(
    held_bounds: Optional[AxisAlignedBox],
    target_bounds: Optional[AxisAlignedBox],
    target_pose: Pose,
    robot_position: VectorLike,
    margin: float = 0.02,
    held_pivot: Optional[VectorLike] = None,
    held_yaw: float = 0.0,
    align_yaw: bool = True,
    probe: Optional[SurfaceProbe] = None,
    accept_hit: Optional[Callable[[ProbeHit], bool]] = None,
    ray_height: float = 1.5
) -> Optional[PlacementSolution]:
    """
    计算放置位姿

    Args:
        held_bounds: 手持物体的世界包围盒
        target_bounds: 目标(含所有子部件)的世界包围盒
        target_pose: 目标位姿, 提供 right/forward 轴
        robot_position: 机器人当前位置
        margin: 与表面及边缘的间隙(米)
        held_pivot: 物体 pivot 位置, 缺省视为包围盒中心
        held_yaw: 物体当前 yaw, 不对齐时保留
        align_yaw: 是否对齐目标 forward 轴
        probe: 向下探测函数
        accept_hit: 判断命中是否属于目标
        ray_height: 探测起点在候选点上方的高度

    Returns:
        PlacementSolution, 包围盒缺失时返回 None
    """
    if held_bounds is None or target_bounds is None:
        logger.warning("放置求解失败: 无法计算包围盒")
        return None

    right = target_pose.right
    forward = target_pose.forward

    half_width = target_bounds.half_along(right)
    half_depth = target_bounds.half_along(forward)
    held_half_up = held_bounds.half_along(UP)

    inset_x = held_bounds.half_along(right) + margin
    inset_z = held_bounds.half_along(forward) + margin

    to_robot = as_vector(robot_position) - target_bounds.center
    side_local = float(np.dot(to_robot, right))
    front_local = float(np.dot(to_robot, forward))

    x_local = _clamp_symmetric(side_local, half_width - inset_x)
    depth_limit = max(half_depth - inset_z, 0.0)
    z_local = depth_limit if front_local >= 0.0 else -depth_limit

    top = np.array([target_bounds.center[0], target_bounds.center[1], target_bounds.max[2]])
    top = top + right * x_local + forward * z_local

    # 目标有旋转时局部偏移可能越出世界包围盒, 在 x/y 上按物体半宽 + margin 再夹一次
    for axis in (0, 1):
        limit = target_bounds.extents[axis] - held_bounds.extents[axis] - margin
        offset = top[axis] - target_bounds.center[axis]
        top[axis] = target_bounds.center[axis] + _clamp_symmetric(offset, limit)

    offset = top - target_bounds.center
    x_local = float(np.dot(offset, right))
    z_local = float(np.dot(offset, forward))

    surface_height = float(target_bounds.max[2])
    if probe is not None:
        origin = top + UP * ray_height
        hit = probe(origin, ray_height * 2.0)
        if hit is not None and (accept_hit is None or accept_hit(hit)):
            surface_height = float(hit.point[2])
        elif hit is not None:
            logger.debug(f"忽略不属于目标的探测命中: {hit.entity_name}")

    pivot = held_bounds.center if held_pivot is None else as_vector(held_pivot)
    pivot_to_bounds = held_bounds.center - pivot

    bounds_center = np.array([top[0], top[1], surface_height + held_half_up + margin])
    final_position = bounds_center - pivot_to_bounds

    final_yaw = held_yaw
    if align_yaw:
        flat = forward.copy()
        flat[2] = 0.0
        aligned = yaw_of(flat)
        final_yaw = aligned if aligned is not None else 0.0

    return PlacementSolution(
        position=final_position,
        yaw=final_yaw,
        bounds_center=bounds_center,
        surface_height=surface_height,
        local_x=x_local,
        local_z=z_local
    )


class PlacementSolver:
    """
    放置求解器

    持有 margin / yaw 对齐 / 探测高度等参数
    """

    def __init__(
        self,
        margin: float = 0.02,
        align_yaw_to_target: bool = True,
        surface_ray_height: float = 1.5
    ):
        self.margin = margin
        self.align_yaw_to_target = align_yaw_to_target
        self.surface_ray_height = surface_ray_height

    @classmethod
    def from_config(cls, section: dict) -> 'PlacementSolver':
        return cls(
            margin=section.get("margin", 0.02),
            align_yaw_to_target=section.get("align_yaw_to_target", True),
            surface_ray_height=section.get("surface_ray_height", 1.5)
        )

    def solve(
        self,
        held_bounds: Optional[AxisAlignedBox],
        target_bounds: Optional[AxisAlignedBox],
        target_pose: Pose,
        robot_position: VectorLike,
        held_pivot: Optional[VectorLike] = None,
        held_yaw: float = 0.0,
        probe: Optional[SurfaceProbe] = None,
        accept_hit: Optional[Callable[[ProbeHit], bool]] = None
    ) -> Optional[PlacementSolution]:
        return solve_placement(
            held_bounds=held_bounds,
            target_bounds=target_bounds,
            target_pose=target_pose,
            robot_position=robot_position,
            margin=self.margin,
            held_pivot=held_pivot,
            held_yaw=held_yaw,
            align_yaw=self.align_yaw_to_target,
            probe=probe,
            accept_hit=accept_hit,
            ray_height=self.surface_ray_height
        )
