"""
执行监控器 - Execution Monitor

记录每个动作的执行结果(仅内存), 提供失败统计
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from mobot.models.action import Action, ExecutionOutcome, OutcomeStatus


@dataclass
class ExecutionRecord:
    """执行记录"""
    step: int
    action: Action
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    outcome: Optional[ExecutionOutcome] = None


class ExecutionMonitor:
    """
    执行监控器

    records 按执行顺序保存, 超过 max_history 时丢弃最旧的记录
    """

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self.records: List[ExecutionRecord] = []
        self._current: Optional[ExecutionRecord] = None

        logger.info("ExecutionMonitor 初始化完成")

    def start_execution(self, step: int, action: Action) -> ExecutionRecord:
        """开始执行动作"""
        record = ExecutionRecord(step=step, action=action)
        self._current = record
        self.records.append(record)
        if len(self.records) > self.max_history:
            self.records = self.records[-self.max_history:]

        logger.debug(f"开始执行动作 {step}: {action}")
        return record

    def record_outcome(self, outcome: ExecutionOutcome):
        """记录终态结果"""
        record = self._current
        if record is None or record.action != outcome.action:
            record = self.start_execution(0, outcome.action)

        record.end_time = outcome.timestamp
        record.outcome = outcome
        self._current = None

        if outcome.succeeded:
            logger.debug(f"动作成功: {outcome.action}")
        else:
            logger.warning(
                f"动作失败: {outcome.action}, "
                f"类型: {outcome.error_kind.value if outcome.error_kind else '-'}, "
                f"原因: {outcome.detail}"
            )

    @property
    def outcomes(self) -> List[ExecutionOutcome]:
        return [r.outcome for r in self.records if r.outcome is not None]

    def last_outcome(self) -> Optional[ExecutionOutcome]:
        for record in reversed(self.records):
            if record.outcome is not None:
                return record.outcome
        return None

    def get_failures(self) -> List[ExecutionOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    def get_statistics(self) -> Dict[str, Any]:
        """获取执行统计"""
        outcomes = self.outcomes
        total = len(outcomes)
        successful = sum(1 for o in outcomes if o.status == OutcomeStatus.SUCCESS)
        timeouts = sum(1 for o in outcomes if o.status == OutcomeStatus.TIMEOUT)

        error_kinds = {}
        for o in outcomes:
            if o.error_kind:
                kind = o.error_kind.value
                error_kinds[kind] = error_kinds.get(kind, 0) + 1

        return {
            "total_executed": total,
            "successful": successful,
            "failed": total - successful,
            "timeouts": timeouts,
            "success_rate": successful / total if total > 0 else 0.0,
            "error_kinds": error_kinds
        }

    def clear(self):
        """清空记录"""
        self.records.clear()
        self._current = None
        logger.debug("执行记录已清空")
