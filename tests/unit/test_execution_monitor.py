"""
Unit Tests for ExecutionMonitor

执行监控器单元测试
"""

import pytest

from mobot.common.exceptions import ErrorKind
from mobot.execution.monitor import ExecutionMonitor
from mobot.models.action import Action, ActionVerb, ExecutionOutcome, OutcomeStatus


def outcome(action, status=OutcomeStatus.SUCCESS, kind=None):
    return ExecutionOutcome(action=action, status=status, error_kind=kind)


@pytest.mark.unit
class TestExecutionMonitor:
    """ExecutionMonitor 测试类"""

    def test_record_and_statistics(self):
        monitor = ExecutionMonitor()
        move = Action(ActionVerb.MOVE, "desk_01")
        pick = Action(ActionVerb.PICK, "laptop")

        monitor.start_execution(1, move)
        monitor.record_outcome(outcome(move))
        monitor.start_execution(2, pick)
        monitor.record_outcome(outcome(pick, OutcomeStatus.TIMEOUT, ErrorKind.TIMEOUT))

        stats = monitor.get_statistics()
        assert stats["total_executed"] == 2
        assert stats["successful"] == 1
        assert stats["failed"] == 1
        assert stats["timeouts"] == 1
        assert stats["success_rate"] == 0.5
        assert stats["error_kinds"] == {"timeout": 1}

        assert monitor.records[1].step == 2
        assert monitor.records[1].end_time is not None
        assert monitor.last_outcome().action == pick
        assert [o.action for o in monitor.get_failures()] == [pick]

    def test_history_is_bounded(self):
        monitor = ExecutionMonitor(max_history=2)
        for i in range(4):
            action = Action(ActionVerb.OPEN, f"door_{i}")
            monitor.start_execution(i + 1, action)
            monitor.record_outcome(outcome(action))

        assert [r.step for r in monitor.records] == [3, 4]

    def test_outcome_without_start(self):
        monitor = ExecutionMonitor()
        action = Action(ActionVerb.OPEN, "door_03")
        monitor.record_outcome(outcome(action))
        assert monitor.records[0].outcome.action == action

    def test_empty_statistics_and_clear(self):
        monitor = ExecutionMonitor()
        assert monitor.get_statistics()["success_rate"] == 0.0
        assert monitor.last_outcome() is None

        action = Action(ActionVerb.OPEN, "door_03")
        monitor.start_execution(1, action)
        monitor.clear()
        assert monitor.records == []
