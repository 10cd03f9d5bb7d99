"""内存仿真: 控制器、设备与演示场景"""
from mobot.simulation.robot import SimulatedLocomotion, SimulatedManipulator
from mobot.simulation.devices import Door, SwitchDevice
from mobot.simulation.scene import build_demo_world, make_object, make_surface

__all__ = [
    "SimulatedLocomotion",
    "SimulatedManipulator",
    "Door",
    "SwitchDevice",
    "build_demo_world",
    "make_object",
    "make_surface"
]
