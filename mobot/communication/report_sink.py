"""
报告输出 - Report Sink

面向操作员的消息出口, 每个执行结果和每批世界状态更新都会送到这里
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from loguru import logger


class Severity(Enum):
    """消息级别"""
    INFO = "info"
    PROGRESS = "progress"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ReportMessage:
    """一条报告消息"""
    text: str
    severity: Severity
    timestamp: datetime = field(default_factory=datetime.now)


class ReportSink(ABC):
    """报告出口接口"""

    @abstractmethod
    def show_message(self, text: str, severity: Severity = Severity.INFO):
        """显示一条消息"""


class LoggingReportSink(ReportSink):
    """写入日志的报告出口"""

    _LEVELS = {
        Severity.INFO: "INFO",
        Severity.PROGRESS: "INFO",
        Severity.SUCCESS: "SUCCESS",
        Severity.WARNING: "WARNING",
        Severity.ERROR: "ERROR"
    }

    def show_message(self, text: str, severity: Severity = Severity.INFO):
        logger.log(self._LEVELS[severity], f"[Report] {text}")


class MemoryReportSink(ReportSink):
    """
    内存报告出口

    保留全部消息, 可选转发给下游出口
    """

    def __init__(self, forward_to: Optional[ReportSink] = None):
        self.messages: List[ReportMessage] = []
        self.forward_to = forward_to

    def show_message(self, text: str, severity: Severity = Severity.INFO):
        self.messages.append(ReportMessage(text=text, severity=severity))
        if self.forward_to is not None:
            self.forward_to.show_message(text, severity)

    @property
    def texts(self) -> List[str]:
        return [m.text for m in self.messages]

    @property
    def last(self) -> Optional[ReportMessage]:
        return self.messages[-1] if self.messages else None

    def of_severity(self, severity: Severity) -> List[ReportMessage]:
        return [m for m in self.messages if m.severity == severity]

    def clear(self):
        self.messages.clear()
