"""
Unit Tests for UpdateAggregator

更新聚合器单元测试
"""

import pytest

from mobot.communication.report_sink import Severity
from mobot.state.update_aggregator import UpdateAggregator, UpdateRecord


@pytest.mark.unit
class TestUpdateRecord:
    """UpdateRecord 测试类"""

    def test_format_position(self):
        rec = UpdateRecord(type="place", subject="laptop", position=(3.5, 0.0, 0.77))
        assert rec.format() == "place:laptop pos=(3.50,0.00,0.77)"

    def test_format_states(self):
        assert UpdateRecord("open", "door_03", state=True).format() == "open:door_03 state=OPEN"
        assert UpdateRecord("open", "door_03", state=False).format() == "open:door_03 state=CLOSED"
        assert UpdateRecord("switch", "lamp_02", state=True).format() == "switch:lamp_02 state=ON"
        assert UpdateRecord("switch", "lamp_02", state=False).format() == "switch:lamp_02 state=OFF"

    def test_key_is_case_insensitive(self):
        assert UpdateRecord("switch", "Lamp_02").key == UpdateRecord("SWITCH", "lamp_02").key


@pytest.mark.unit
class TestUpdateAggregator:
    """UpdateAggregator 测试类"""

    def test_immediate_mode(self, aggregator, sink):
        """窗口外逐条立即输出"""
        aggregator.record("switch", "lamp_02", state=True)
        aggregator.record("open", "door_03", state=True)

        assert sink.texts == ["switch:lamp_02 state=ON", "open:door_03 state=OPEN"]
        assert all(m.severity == Severity.INFO for m in sink.messages)

    def test_batch_collapses_same_key(self, aggregator, sink):
        """同一 (type, subject) 在窗口内只保留最新值"""
        aggregator.begin_batch()
        aggregator.record("switch", "lamp_02", state=True)
        aggregator.record("switch", "lamp_02", state=False)

        assert sink.texts == []
        report = aggregator.end_batch_and_flush()

        assert report == "switch:lamp_02 state=OFF"
        assert sink.texts == ["switch:lamp_02 state=OFF"]

    def test_batch_keeps_first_insertion_order(self, aggregator):
        """按首次插入顺序输出, 覆盖不改变位置"""
        aggregator.begin_batch()
        aggregator.record("move", "robot", position=(1, 0, 0))
        aggregator.record("place", "laptop", position=(3.5, 0, 0.77))
        aggregator.record("move", "robot", position=(2, 0, 0))

        report = aggregator.end_batch_and_flush()
        assert report.splitlines() == [
            "move:robot pos=(2.00,0.00,0.00)",
            "place:laptop pos=(3.50,0.00,0.77)"
        ]

    def test_flush_without_window_is_noop(self, aggregator, sink):
        """未打开窗口时 flush 不输出也不清除"""
        aggregator.record("open", "door_03", state=True)
        sink.clear()

        assert aggregator.end_batch_and_flush() is None
        assert sink.texts == []
        assert len(aggregator.updates) == 1

    def test_begin_batch_twice_keeps_window(self, aggregator):
        """重复打开窗口保留已收集的记录"""
        aggregator.begin_batch()
        aggregator.record("open", "door_03", state=True)
        aggregator.begin_batch()
        aggregator.record("switch", "lamp_02", state=True)

        assert len(aggregator.pending_records()) == 2
        assert aggregator.end_batch_and_flush().count("\n") == 1
        assert not aggregator.is_batching

    def test_empty_batch_emits_nothing(self, aggregator, sink):
        aggregator.begin_batch()
        assert aggregator.end_batch_and_flush() == ""
        assert sink.texts == []

    def test_last_known_state(self, aggregator):
        """最近状态映射"""
        aggregator.record("move", "robot", position=(1, 2, 0))
        aggregator.record("place", "Laptop", position=(3, 0, 0.8))
        aggregator.record("open", "door_03", state=True)
        aggregator.record("switch", "lamp_02", state=False)

        assert aggregator.last_robot_position.tolist() == [1.0, 2.0, 0.0]
        assert aggregator.last_placed_positions["laptop"].tolist() == [3.0, 0.0, 0.8]
        assert aggregator.door_states == {"door_03": True}
        assert aggregator.switch_states == {"lamp_02": False}

    def test_history_is_bounded(self, sink):
        aggregator = UpdateAggregator(sink=sink, max_history=3)
        for i in range(5):
            aggregator.record("move", "robot", position=(i, 0, 0))
        assert len(aggregator.updates) == 3
        assert aggregator.updates[0].position[0] == 2.0
