"""
演示场景

lab 房间: desk_01 桌面, 桌上的 laptop, door_03 门, lamp_02 台灯开关
classroom 房间: table_01 桌面, book
"""

from mobot.geometry.bounds import AxisAlignedBox
from mobot.simulation.devices import Door, SwitchDevice
from mobot.state.world_registry import InMemoryWorldRegistry, WorldEntity


def make_surface(name: str, position, size, top_thickness: float = 0.05) -> WorldEntity:
    """
    创建带桌面和桌腿的表面实体

    size 为 (长, 宽, 高); 桌面作为子部件, 包围盒由深度聚合得到
    """
    length, width, height = size
    desk = WorldEntity(name=name, position=position, surface=True)
    top = WorldEntity(
        name=f"{name}_top",
        position=desk.position.copy(),
        geometry=AxisAlignedBox(
            (-length / 2, -width / 2, height - top_thickness),
            (length / 2, width / 2, height)
        )
    )
    legs = WorldEntity(
        name=f"{name}_legs",
        position=desk.position.copy(),
        geometry=AxisAlignedBox(
            (-length / 2 + 0.05, -width / 2 + 0.05, 0.0),
            (length / 2 - 0.05, width / 2 - 0.05, height - top_thickness)
        )
    )
    top.parent = desk
    legs.parent = desk
    desk.children.extend([top, legs])
    return desk


def make_object(name: str, position, size) -> WorldEntity:
    """创建可抓取物体, pivot 位于底面中心"""
    length, width, height = size
    return WorldEntity(
        name=name,
        position=position,
        geometry=AxisAlignedBox((-length / 2, -width / 2, 0.0), (length / 2, width / 2, height))
    )


def build_demo_world(registry: InMemoryWorldRegistry) -> InMemoryWorldRegistry:
    """向注册表中写入演示场景"""
    lab = registry.add(WorldEntity(name="lab", position=(0.0, 0.0, 0.0)))
    lab_objects = registry.add(WorldEntity(name="object", position=(0.0, 0.0, 0.0)), parent=lab)

    registry.add(make_surface("desk_01", (4.0, 0.0, 0.0), (1.2, 0.6, 0.75)), parent=lab_objects)
    registry.add(make_object("laptop", (4.0, 0.0, 0.75), (0.35, 0.25, 0.03)), parent=lab_objects)
    registry.add(make_object("cup", (4.3, 0.1, 0.75), (0.08, 0.08, 0.1)), parent=lab_objects)

    registry.add(
        WorldEntity(
            name="door_03",
            position=(6.0, 3.0, 0.0),
            geometry=AxisAlignedBox((-0.05, -0.45, 0.0), (0.05, 0.45, 2.0)),
            door=Door("door_03")
        ),
        parent=lab
    )
    registry.add(
        WorldEntity(
            name="lamp_02",
            position=(4.5, -0.2, 0.75),
            geometry=AxisAlignedBox((-0.05, -0.05, 0.0), (0.05, 0.05, 0.4)),
            switch=SwitchDevice("lamp_02")
        ),
        parent=lab_objects
    )

    classroom = registry.add(WorldEntity(name="classroom", position=(12.0, 0.0, 0.0)))
    registry.add(make_surface("table_01", (12.0, 2.0, 0.0), (1.6, 0.8, 0.72)), parent=classroom)
    registry.add(make_object("book", (12.2, 2.0, 0.72), (0.2, 0.15, 0.04)), parent=classroom)

    return registry
