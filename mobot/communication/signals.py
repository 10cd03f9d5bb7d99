"""
离散事件信号

显式观察者列表: connect 返回回调本身, disconnect 按相等性精确移除
(绑定方法每次取属性都会新建对象, 但相等比较成立)
"""

from typing import Any, Callable, List

from loguru import logger


class Signal:
    """
    离散事件

    用于 attach/place 等边沿事件, 回调同步执行
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: List[Callable[..., Any]] = []

    def connect(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """订阅; 同一回调不会重复加入"""
        if handler not in self._handlers:
            self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable[..., Any]) -> bool:
        """取消订阅, 返回是否确实移除"""
        before = len(self._handlers)
        self._handlers = [h for h in self._handlers if h != handler]
        return len(self._handlers) < before

    def emit(self, *args, **kwargs):
        """按订阅顺序通知; 单个回调异常不影响其他回调"""
        for handler in list(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception as e:
                logger.error(f"信号 {self.name} 回调执行失败: {e}")

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, handlers={len(self._handlers)})"
