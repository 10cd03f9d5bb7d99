"""
实体能力接口

门与开关通过显式接口暴露状态, 执行层按能力查询而不是按类型判断
"""

from abc import ABC, abstractmethod
from enum import Enum


class Capability(Enum):
    """实体能力"""
    DOOR = "door"
    SWITCH = "switch"
    SURFACE = "surface"


class HasOpenState(ABC):
    """可开关的门"""

    @abstractmethod
    def open(self):
        """打开"""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """当前是否打开"""


class HasOnState(ABC):
    """带通断状态的开关"""

    @abstractmethod
    def set_on(self, on: bool):
        """设置通断"""

    @property
    @abstractmethod
    def is_on(self) -> bool:
        """当前是否接通"""

    def switch_on(self):
        self.set_on(True)

    def switch_off(self):
        self.set_on(False)

    def toggle(self):
        self.set_on(not self.is_on)
