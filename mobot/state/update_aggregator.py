"""
世界状态更新聚合器 - Update Aggregator

负责:
- 记录每个改变世界状态的副作用(到达/放置/开门/开关)
- 批处理窗口内按 (type, subject) 合并, 保留最新值
- 窗口关闭时按首次插入顺序一次性输出
- 非批处理模式下逐条立即输出
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np
from loguru import logger

from mobot.communication.report_sink import ReportSink, Severity
from mobot.geometry.bounds import VectorLike, as_vector


@dataclass
class UpdateRecord:
    """一条世界状态更新"""
    type: str
    subject: str
    position: Optional[np.ndarray] = None
    state: Optional[bool] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> str:
        return f"{self.type}:{self.subject}".casefold()

    def format(self) -> str:
        """格式化为一行报告"""
        line = f"{self.type}:{self.subject}"

        if self.position is not None and self.type in ("move", "place"):
            x, y, z = self.position
            line += f" pos=({x:.2f},{y:.2f},{z:.2f})"

        if self.state is not None:
            if self.type == "open":
                line += f" state={'OPEN' if self.state else 'CLOSED'}"
            elif self.type in ("switch", "switchon", "switchoff"):
                line += f" state={'ON' if self.state else 'OFF'}"

        return line

    def to_dict(self) -> Dict:
        return {
            "type": self.type,
            "subject": self.subject,
            "position": self.position.tolist() if self.position is not None else None,
            "state": self.state,
            "timestamp": self.timestamp.isoformat()
        }


class UpdateAggregator:
    """
    更新聚合器

    所有记录同时保存在 updates 历史中, 以及最近位置/门/开关状态映射
    """

    def __init__(self, sink: Optional[ReportSink] = None, max_history: int = 1000):
        self.sink = sink
        self.max_history = max_history

        self.updates: List[UpdateRecord] = []

        # 最近状态(名称大小写无关)
        self.last_robot_position: Optional[np.ndarray] = None
        self.last_placed_positions: Dict[str, np.ndarray] = {}
        self.door_states: Dict[str, bool] = {}
        self.switch_states: Dict[str, bool] = {}

        self._batching = False
        # dict 保持插入顺序, 覆盖同键不会改变位置
        self._pending: Dict[str, UpdateRecord] = {}

        # 最近一次输出
        self.last_report: Optional[str] = None

        logger.info("UpdateAggregator 初始化完成")

    @property
    def is_batching(self) -> bool:
        return self._batching

    def begin_batch(self):
        """打开批处理窗口; 已打开时继续沿用当前窗口"""
        if self._batching:
            logger.debug("批处理窗口已打开, 继续收集")
            return
        self._batching = True
        self._pending.clear()
        logger.debug("打开批处理窗口")

    def record(
        self,
        type: str,
        subject: str,
        position: Optional[VectorLike] = None,
        state: Optional[bool] = None
    ) -> UpdateRecord:
        """记录一次更新"""
        rec = UpdateRecord(
            type=type,
            subject=subject,
            position=as_vector(position) if position is not None else None,
            state=state
        )

        self.updates.append(rec)
        if len(self.updates) > self.max_history:
            self.updates = self.updates[-self.max_history:]
        self._remember(rec)

        if self._batching:
            # 同键覆盖, 位置保持首次插入
            self._pending[rec.key] = rec
        else:
            line = rec.format()
            self._emit(line)
            logger.info(f"[Update] {line}")

        return rec

    def end_batch_and_flush(self) -> Optional[str]:
        """关闭窗口并输出合并后的报告; 未在批处理中时不做任何事"""
        if not self._batching:
            return None

        report = "\n".join(rec.format() for rec in self._pending.values())

        self._batching = False
        self._pending.clear()

        if report:
            self._emit(report)
            logger.info(f"[Update] 批量输出 {report.count(chr(10)) + 1} 条更新")
        return report

    def pending_records(self) -> List[UpdateRecord]:
        return list(self._pending.values())

    def _remember(self, rec: UpdateRecord):
        name = rec.subject.casefold()
        if rec.type == "move" and rec.subject == "robot":
            self.last_robot_position = rec.position
        elif rec.type == "place" and rec.position is not None:
            self.last_placed_positions[name] = rec.position
        elif rec.type == "open" and rec.state is not None:
            self.door_states[name] = rec.state
        elif rec.type.startswith("switch") and rec.state is not None:
            self.switch_states[name] = rec.state

    def _emit(self, text: str):
        self.last_report = text
        if self.sink is not None:
            self.sink.show_message(text, Severity.INFO)
