"""
仿真设备 - 门与开关
"""

from typing import Callable, List, Optional

from loguru import logger

from mobot.state.capabilities import HasOnState, HasOpenState


class Door(HasOpenState):
    """可打开的门"""

    def __init__(self, name: str = "door", start_open: bool = False):
        self.name = name
        self._open = start_open

    def open(self):
        if not self._open:
            logger.debug(f"门打开: {self.name}")
        self._open = True

    def close(self):
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open


class SwitchDevice(HasOnState):
    """
    开关

    targets 为被控对象的通断回调(例如一组灯), 状态变化时逐个调用
    """

    def __init__(
        self,
        name: str = "switch",
        start_on: bool = False,
        targets: Optional[List[Callable[[bool], None]]] = None
    ):
        self.name = name
        self.targets = list(targets or [])
        self._on = False
        self.set_on(start_on)

    def set_on(self, on: bool):
        self._on = bool(on)
        for target in self.targets:
            target(self._on)
        logger.debug(f"开关 {self.name}: {'ON' if self._on else 'OFF'}")

    @property
    def is_on(self) -> bool:
        return self._on
