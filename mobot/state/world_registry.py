"""
世界注册表 - World Registry

负责:
- 名称 → 实体 的 O(1) 查询
- 深度聚合包围盒 (实体及所有子部件)
- 能力查询 (门/开关/表面)
- 层级维护 (容器归属转移)
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set

import numpy as np
from loguru import logger

from mobot.geometry.bounds import AxisAlignedBox, Pose, VectorLike, as_vector
from mobot.geometry.placement import ProbeHit
from mobot.state.capabilities import Capability, HasOnState, HasOpenState


@dataclass(eq=False)
class WorldEntity:
    """
    世界实体

    geometry 为实体自身的可渲染/可碰撞几何, 以实体坐标系表示
    (相对 position, 随 yaw 旋转); 没有几何的实体只作为分组节点。
    """
    name: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    yaw: float = 0.0
    geometry: Optional[AxisAlignedBox] = None
    door: Optional[HasOpenState] = None
    switch: Optional[HasOnState] = None
    surface: bool = False
    physics_enabled: bool = True
    parent: Optional['WorldEntity'] = field(default=None, repr=False)
    children: List['WorldEntity'] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self.position = as_vector(self.position)

    @property
    def pose(self) -> Pose:
        return Pose(self.position.copy(), self.yaw)

    def own_bounds(self) -> Optional[AxisAlignedBox]:
        """自身几何的世界包围盒"""
        if self.geometry is None:
            return None
        c, s = abs(math.cos(self.yaw)), abs(math.sin(self.yaw))
        ex, ey, ez = self.geometry.extents
        extents = np.array([c * ex + s * ey, s * ex + c * ey, ez])

        lc = self.geometry.center
        cos_y, sin_y = math.cos(self.yaw), math.sin(self.yaw)
        center = self.position + np.array([
            cos_y * lc[0] - sin_y * lc[1],
            sin_y * lc[0] + cos_y * lc[1],
            lc[2]
        ])
        return AxisAlignedBox.from_center_extents(center, extents)

    def iter_subtree(self) -> Iterator['WorldEntity']:
        """深度优先遍历自身及所有后代"""
        yield self
        for child in self.children:
            yield from child.iter_subtree()

    def set_pose(self, position: VectorLike, yaw: Optional[float] = None):
        """移动实体, 后代随之平移"""
        delta = as_vector(position) - self.position
        for node in self.iter_subtree():
            node.position = node.position + delta
        if yaw is not None:
            self.yaw = yaw


class WorldRegistry(ABC):
    """世界注册表接口"""

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[WorldEntity]:
        """按名称查找实体"""

    @abstractmethod
    def bounds_of(self, entity: WorldEntity) -> Optional[AxisAlignedBox]:
        """实体(含子部件)的世界包围盒"""

    @abstractmethod
    def capabilities_of(self, entity: WorldEntity) -> Set[Capability]:
        """实体自身的能力"""

    @abstractmethod
    def scan_by_name(self, name: str, capability: Capability) -> Optional[WorldEntity]:
        """全表扫描: 名称大小写无关且具备能力"""

    @abstractmethod
    def raycast_down(self, origin: VectorLike, max_distance: float) -> Optional[ProbeHit]:
        """从 origin 垂直向下探测表面"""

    @abstractmethod
    def reparent(self, entity: WorldEntity, new_parent: Optional[WorldEntity]):
        """更换父节点, 保持世界位姿"""

    @abstractmethod
    def room_root_of(self, entity: WorldEntity, room_roots: Sequence[str]) -> Optional[WorldEntity]:
        """向上查找所属房间根节点"""

    @abstractmethod
    def get_or_create_container(self, room_root: WorldEntity, container_name: str) -> WorldEntity:
        """取得房间下的物体容器, 不存在则创建"""

    def find_capable(self, entity: WorldEntity, capability: Capability) -> Optional[WorldEntity]:
        """在实体及其后代中查找具备某能力的第一个实体"""
        for node in entity.iter_subtree():
            if capability in self.capabilities_of(node):
                return node
        return None

    @staticmethod
    def is_descendant(entity: Optional[WorldEntity], ancestor: WorldEntity) -> bool:
        """entity 是否为 ancestor 自身或其后代"""
        node = entity
        while node is not None:
            if node is ancestor:
                return True
            node = node.parent
        return False


class InMemoryWorldRegistry(WorldRegistry):
    """
    内存世界注册表

    以唯一名称为键; 同时维护大小写无关索引作为后备查询
    """

    def __init__(self):
        self._entities: Dict[str, WorldEntity] = {}
        self._folded: Dict[str, WorldEntity] = {}
        self._roots: List[WorldEntity] = []

        logger.info("InMemoryWorldRegistry 初始化完成")

    # ==================== 注册 ====================

    def add(self, entity: WorldEntity, parent: Optional[WorldEntity] = None) -> WorldEntity:
        """注册实体及其已有的子实体"""
        for node in entity.iter_subtree():
            if node.name in self._entities:
                raise ValueError(f"实体名称重复: {node.name}")

        if parent is not None:
            self._attach(entity, parent)
        elif entity.parent is None:
            self._roots.append(entity)

        for node in entity.iter_subtree():
            self._entities[node.name] = node
            self._folded.setdefault(node.name.casefold(), node)

        logger.debug(f"注册实体: {entity.name}")
        return entity

    def remove(self, entity: WorldEntity):
        """移除实体及其后代"""
        self._detach(entity)
        for node in list(entity.iter_subtree()):
            self._entities.pop(node.name, None)
            if self._folded.get(node.name.casefold()) is node:
                del self._folded[node.name.casefold()]

    # ==================== 查询 ====================

    def find_by_name(self, name: str) -> Optional[WorldEntity]:
        if not name:
            return None
        entity = self._entities.get(name)
        if entity is None:
            entity = self._folded.get(name.casefold())
        return entity

    def bounds_of(self, entity: WorldEntity) -> Optional[AxisAlignedBox]:
        return AxisAlignedBox.union_of(
            b for b in (node.own_bounds() for node in entity.iter_subtree()) if b is not None
        )

    def capabilities_of(self, entity: WorldEntity) -> Set[Capability]:
        caps: Set[Capability] = set()
        if entity.door is not None:
            caps.add(Capability.DOOR)
        if entity.switch is not None:
            caps.add(Capability.SWITCH)
        if entity.surface:
            caps.add(Capability.SURFACE)
        return caps

    def iter_entities(self) -> Iterator[WorldEntity]:
        return iter(list(self._entities.values()))

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def scan_by_name(self, name: str, capability: Capability) -> Optional[WorldEntity]:
        """全表扫描: 名称大小写无关且具备能力"""
        folded = name.casefold()
        for node in self._entities.values():
            if node.name.casefold() == folded and capability in self.capabilities_of(node):
                return node
        return None

    def raycast_down(self, origin: VectorLike, max_distance: float) -> Optional[ProbeHit]:
        """
        从 origin 垂直向下探测

        返回最高的、xy 覆盖 origin 的实体上表面; 物理关闭的实体(如手持物体)不参与
        """
        o = as_vector(origin)
        best: Optional[ProbeHit] = None
        for node in self._entities.values():
            if not node.physics_enabled:
                continue
            box = node.own_bounds()
            if box is None or not box.contains_xy(o):
                continue
            top = float(box.max[2])
            if top > o[2] or o[2] - top > max_distance:
                continue
            if best is None or top > best.point[2]:
                best = ProbeHit(point=np.array([o[0], o[1], top]), entity_name=node.name)
        return best

    # ==================== 层级 ====================

    def reparent(self, entity: WorldEntity, new_parent: Optional[WorldEntity]):
        """更换父节点, 保持世界位姿"""
        self._detach(entity)
        if new_parent is None:
            self._roots.append(entity)
        else:
            self._attach(entity, new_parent)

    @staticmethod
    def _matches_variant(name: str, key: str) -> bool:
        n, k = name.lower(), key.lower()
        return n == k or n.startswith(k + "_") or n.startswith(k + " ") or n.startswith(k + "(")

    def room_root_of(self, entity: WorldEntity, room_roots: Sequence[str]) -> Optional[WorldEntity]:
        """向上查找所属房间根节点"""
        node = entity
        while node is not None:
            if any(self._matches_variant(node.name, room) for room in room_roots):
                return node
            node = node.parent
        return None

    def get_or_create_container(self, room_root: WorldEntity, container_name: str) -> WorldEntity:
        """取得房间下的物体容器, 不存在则创建"""
        for child in room_root.children:
            if self._matches_variant(child.name, container_name):
                return child

        name = container_name
        suffix = 1
        while name in self._entities:
            name = f"{container_name}_{room_root.name}_{suffix}"
            suffix += 1

        container = WorldEntity(name=name, position=room_root.position.copy())
        self.add(container, parent=room_root)
        logger.debug(f"创建物体容器: {room_root.name}/{name}")
        return container

    def _attach(self, entity: WorldEntity, parent: WorldEntity):
        entity.parent = parent
        parent.children.append(entity)

    def _detach(self, entity: WorldEntity):
        if entity.parent is not None:
            entity.parent.children = [c for c in entity.parent.children if c is not entity]
            entity.parent = None
        elif entity in self._roots:
            self._roots.remove(entity)
