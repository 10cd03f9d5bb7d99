"""几何模块"""
from mobot.geometry.bounds import AxisAlignedBox, Pose, forward_of, right_of, yaw_of
from mobot.geometry.placement import (
    PlacementSolver,
    PlacementSolution,
    ProbeHit,
    solve_placement
)

__all__ = [
    "AxisAlignedBox",
    "Pose",
    "forward_of",
    "right_of",
    "yaw_of",
    "PlacementSolver",
    "PlacementSolution",
    "ProbeHit",
    "solve_placement"
]
