"""
Unit Tests for CompletionDetector

完成检测器单元测试
"""

import asyncio

import pytest

from mobot.common.exceptions import ErrorKind, TargetNotFound
from mobot.execution.completion import CompletionDetector
from mobot.execution.operations.base import ActionHandle, ActionStateMachine, PollStatus
from mobot.models.action import Action, ActionVerb, OutcomeStatus


class ScriptedMachine(ActionStateMachine):
    """按预设序列返回轮询结果, 序列用完后保持 PENDING"""

    timeout = 1.0

    def __init__(self, statuses):
        super().__init__(context=None)
        self.statuses = list(statuses)
        self.cancelled = 0
        self.released = 0

    async def start(self, action):
        return ActionHandle(action=action)

    def poll(self, handle):
        if self.statuses:
            return self.statuses.pop(0)
        return PollStatus.PENDING

    def cancel(self, handle):
        self.cancelled += 1

    def release(self, handle):
        self.released += 1


def make_handle():
    return ActionHandle(action=Action(ActionVerb.PICK, "laptop"))


@pytest.mark.unit
class TestCompletionDetector:
    """CompletionDetector 测试类"""

    @pytest.mark.asyncio
    async def test_success(self):
        machine = ScriptedMachine([PollStatus.PENDING, PollStatus.PENDING, PollStatus.DONE])
        result = await CompletionDetector(tick=0.001).wait(machine, make_handle())

        assert result.status == OutcomeStatus.SUCCESS
        assert result.polls == 3
        assert result.detail == "pick(laptop)"
        assert machine.released == 1
        assert machine.cancelled == 0

    @pytest.mark.asyncio
    async def test_failure_carries_error_kind(self):
        handle = make_handle()
        handle.fail(TargetNotFound("target not found: laptop"))
        machine = ScriptedMachine([PollStatus.FAILED])

        result = await CompletionDetector(tick=0.001).wait(machine, handle)

        assert result.status == OutcomeStatus.FAILURE
        assert result.error_kind == ErrorKind.TARGET_NOT_FOUND
        assert result.detail == "target not found: laptop"
        assert machine.released == 1

    @pytest.mark.asyncio
    async def test_timeout_cancels(self):
        machine = ScriptedMachine([])
        result = await CompletionDetector(tick=0.005).wait(machine, make_handle(), timeout=0.03)

        assert result.status == OutcomeStatus.TIMEOUT
        assert result.error_kind == ErrorKind.TIMEOUT
        assert result.detail == "timeout"
        assert result.elapsed >= 0.03
        assert machine.cancelled == 1
        assert machine.released == 1

    @pytest.mark.asyncio
    async def test_polls_at_most_once_per_tick(self):
        """两次轮询之间至少间隔一个 tick"""
        machine = ScriptedMachine([PollStatus.PENDING] * 4 + [PollStatus.DONE])
        result = await CompletionDetector(tick=0.01).wait(machine, make_handle())

        assert result.polls == 5
        assert result.elapsed >= 0.04 * 0.9

    @pytest.mark.asyncio
    async def test_does_not_block_the_loop(self):
        """等待期间其他协程可以运行"""
        machine = ScriptedMachine([])
        ticks = []

        async def other():
            for i in range(3):
                ticks.append(i)
                await asyncio.sleep(0.001)

        await asyncio.gather(
            CompletionDetector(tick=0.002).wait(machine, make_handle(), timeout=0.02),
            other()
        )
        assert ticks == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_release_on_poll_error(self):
        """poll 抛出异常时仍然解除订阅"""
        class Broken(ScriptedMachine):
            def poll(self, handle):
                raise RuntimeError("sensor gone")

        machine = Broken([])
        with pytest.raises(RuntimeError):
            await CompletionDetector(tick=0.001).wait(machine, make_handle())
        assert machine.released == 1
