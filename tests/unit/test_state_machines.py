"""
Unit Tests for action state machines

动作状态机单元测试 (使用内存仿真控制器)
"""

import asyncio

import pytest

from mobot.common.exceptions import (
    CapabilityMissing,
    ErrorKind,
    PreconditionViolation,
    TargetNotFound
)
from mobot.core.task_maker import TaskMaker
from mobot.execution.completion import CompletionDetector
from mobot.execution.operations import (
    MoveStateMachine,
    PollStatus,
    OpenDoorStateMachine,
    PickStateMachine,
    PlaceStateMachine,
    SwitchStateMachine
)
from mobot.models.action import Action, ActionVerb, OutcomeStatus
from mobot.simulation.devices import SwitchDevice
from mobot.state.robot_state import RobotState
from mobot.state.world_registry import WorldEntity


async def run(machine, action):
    handle = await machine.start(action)
    return await CompletionDetector(tick=0.001).wait(machine, handle)


def act(verb, argument):
    return Action(verb, argument)


@pytest.mark.unit
class TestMoveStateMachine:
    """MoveStateMachine 测试类"""

    @pytest.mark.asyncio
    async def test_move_stands_back_from_target(self, task_maker, sink):
        ctx = task_maker.context
        result = await run(MoveStateMachine(ctx), act(ActionVerb.MOVE, "desk_01"))

        assert result.status == OutcomeStatus.SUCCESS
        # 桌子最近的边在 x=3.4, 退后 0.6
        assert ctx.locomotion.position.tolist() == pytest.approx([2.8, 0.0, 0.0], abs=0.06)
        assert ctx.tracker.state == RobotState.IDLE
        assert any(t.startswith("move:robot pos=") for t in sink.texts)

    @pytest.mark.asyncio
    async def test_move_completes_only_after_robot_stops(self, config_factory, registry, sink):
        """默认到达阈值下, 速度降到阈值以下才算到达, move:robot 记录停止位置"""
        task_maker = TaskMaker.create_simulated(
            config=config_factory(
                locomotion__arrive_threshold=2.5,
                locomotion__agent_extra_stop=1.0,
                locomotion__move_settle_wait=0.02
            ),
            registry=registry,
            sink=sink,
            speed=10.0
        )
        ctx = task_maker.context
        eps = ctx.config.get("locomotion.velocity_epsilon")

        result = await run(MoveStateMachine(ctx), act(ActionVerb.MOVE, "desk_01"))

        assert result.status == OutcomeStatus.SUCCESS
        assert ctx.locomotion.velocity_sq() < eps
        assert not ctx.locomotion.has_path()
        assert ctx.locomotion.position.tolist() == pytest.approx([2.8, 0.0, 0.0], abs=1e-6)

        moves = [u for u in ctx.aggregator.updates if u.type == "move"]
        assert len(moves) == 1
        assert moves[0].position.tolist() == pytest.approx([2.8, 0.0, 0.0], abs=1e-6)

    @pytest.mark.asyncio
    async def test_move_not_arrived_while_path_pending(self, task_maker):
        """算路期间速度为零也不算到达"""
        ctx = task_maker.context
        ctx.config.set("locomotion.arrive_threshold", 100.0)
        ctx.locomotion.path_delay = 10.0

        machine = MoveStateMachine(ctx)
        handle = await machine.start(act(ActionVerb.MOVE, "desk_01"))

        assert ctx.locomotion.path_pending()
        assert machine.poll(handle) == PollStatus.PENDING
        assert ctx.tracker.state == RobotState.MOVING
        machine.cancel(handle)
        machine.release(handle)

    @pytest.mark.asyncio
    async def test_move_target_not_found(self, task_maker):
        with pytest.raises(TargetNotFound):
            await MoveStateMachine(task_maker.context).start(act(ActionVerb.MOVE, "ghost"))
        assert task_maker.tracker.state == RobotState.IDLE

    @pytest.mark.asyncio
    async def test_move_while_holding(self, task_maker):
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "book"))

        machine = MoveStateMachine(ctx)
        handle = await machine.start(act(ActionVerb.MOVE, "table_01"))
        assert ctx.tracker.state == RobotState.MOVING_WHILE_HOLDING
        assert ctx.locomotion.holding_mode is True

        result = await CompletionDetector(tick=0.001).wait(machine, handle)
        assert result.status == OutcomeStatus.SUCCESS
        assert ctx.tracker.state == RobotState.PICKING
        assert ctx.tracker.held_object.name == "book"

    @pytest.mark.asyncio
    async def test_move_timeout_returns_to_rest(self, config_factory, registry, sink):
        task_maker = TaskMaker.create_simulated(
            config=config_factory(execution__step_timeout=0.02),
            registry=registry,
            sink=sink,
            speed=0.5
        )
        result = await run(MoveStateMachine(task_maker.context), act(ActionVerb.MOVE, "table_01"))

        assert result.status == OutcomeStatus.TIMEOUT
        assert task_maker.tracker.state == RobotState.IDLE


@pytest.mark.unit
class TestPickStateMachine:
    """PickStateMachine 测试类"""

    @pytest.mark.asyncio
    async def test_pick(self, task_maker):
        ctx = task_maker.context
        handlers_before = ctx.manipulator.on_attach.handler_count

        result = await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))

        assert result.status == OutcomeStatus.SUCCESS
        assert ctx.manipulator.is_holding()
        assert ctx.tracker.held_object.name == "laptop"
        assert ctx.tracker.state == RobotState.PICKING
        assert ctx.registry.find_by_name("laptop").physics_enabled is False
        assert ctx.manipulator.on_attach.handler_count == handlers_before

    @pytest.mark.asyncio
    async def test_pick_missing_target(self, task_maker):
        with pytest.raises(TargetNotFound):
            await PickStateMachine(task_maker.context).start(act(ActionVerb.PICK, "ghost"))

    @pytest.mark.asyncio
    async def test_pick_while_holding(self, task_maker):
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))

        with pytest.raises(PreconditionViolation) as exc:
            await PickStateMachine(ctx).start(act(ActionVerb.PICK, "cup"))
        assert exc.value.kind == ErrorKind.PRECONDITION_VIOLATION
        assert ctx.tracker.held_object.name == "laptop"

    @pytest.mark.asyncio
    async def test_pick_timeout_stays_empty_handed(self, config_factory, registry, sink):
        task_maker = TaskMaker.create_simulated(
            config=config_factory(
                manipulation__pick_attach_delay=0.2,
                execution__pick_timeout=0.02
            ),
            registry=registry,
            sink=sink,
            speed=50.0
        )
        ctx = task_maker.context
        result = await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))

        assert result.status == OutcomeStatus.TIMEOUT
        await asyncio.sleep(0.3)
        assert not ctx.manipulator.is_holding()
        assert not ctx.tracker.is_holding
        assert ctx.tracker.state == RobotState.IDLE


@pytest.mark.unit
class TestPlaceStateMachine:
    """PlaceStateMachine 测试类"""

    @pytest.mark.asyncio
    async def test_place_on_surface(self, task_maker):
        ctx = task_maker.context
        await run(MoveStateMachine(ctx), act(ActionVerb.MOVE, "desk_01"))
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))

        result = await run(PlaceStateMachine(ctx), act(ActionVerb.PLACE, "desk_01"))

        laptop = ctx.registry.find_by_name("laptop")
        assert result.status == OutcomeStatus.SUCCESS
        assert not ctx.manipulator.is_holding()
        assert ctx.tracker.state == RobotState.IDLE
        assert laptop.physics_enabled is True
        assert laptop.parent.name == "object"
        assert laptop.parent.parent.name == "lab"
        # 底面 = 桌面 + margin
        assert ctx.registry.bounds_of(laptop).min[2] == pytest.approx(0.75 + 0.02)
        assert ctx.manipulator.on_place.handler_count == 1

    @pytest.mark.asyncio
    async def test_place_footprint_inside_target(self, task_maker):
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "book"))
        await run(MoveStateMachine(ctx), act(ActionVerb.MOVE, "table_01"))
        await run(PlaceStateMachine(ctx), act(ActionVerb.PLACE, "table_01"))

        book = ctx.registry.bounds_of(ctx.registry.find_by_name("book"))
        table = ctx.registry.bounds_of(ctx.registry.find_by_name("table_01")).inflated(-0.02)
        assert table.contains_xy(book.min, tolerance=1e-6)
        assert table.contains_xy(book.max, tolerance=1e-6)
        assert ctx.registry.find_by_name("book").parent.parent.name == "classroom"

    @pytest.mark.asyncio
    async def test_place_without_holding(self, task_maker):
        with pytest.raises(PreconditionViolation):
            await PlaceStateMachine(task_maker.context).start(act(ActionVerb.PLACE, "desk_01"))
        assert task_maker.tracker.state == RobotState.IDLE

    @pytest.mark.asyncio
    async def test_place_missing_target(self, task_maker):
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))
        with pytest.raises(TargetNotFound):
            await PlaceStateMachine(ctx).start(act(ActionVerb.PLACE, "ghost"))
        assert ctx.tracker.state == RobotState.PICKING

    @pytest.mark.asyncio
    async def test_object_lost_before_release(self, config_factory, registry, sink):
        """物体在松手前丢失: 失败, 回到 PICKING, 不产生放置事件"""
        task_maker = TaskMaker.create_simulated(
            config=config_factory(manipulation__place_detach_delay=0.05),
            registry=registry,
            sink=sink,
            speed=50.0
        )
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))
        placed = []
        ctx.manipulator.on_place.connect(placed.append)

        machine = PlaceStateMachine(ctx)
        handle = await machine.start(act(ActionVerb.PLACE, "desk_01"))
        assert ctx.tracker.state == RobotState.PLACING
        ctx.manipulator.drop()

        result = await CompletionDetector(tick=0.001).wait(machine, handle)

        assert result.status == OutcomeStatus.FAILURE
        assert result.error_kind == ErrorKind.PRECONDITION_VIOLATION
        assert ctx.tracker.state == RobotState.PICKING
        assert placed == []
        assert not any(t.startswith("place:") for t in sink.texts)

    @pytest.mark.asyncio
    async def test_place_requires_picking_state(self, task_maker):
        """持物但仍在移动中: PreconditionViolation"""
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))
        ctx.tracker.transition(RobotState.MOVING_WHILE_HOLDING, "test")

        with pytest.raises(PreconditionViolation):
            await PlaceStateMachine(ctx).start(act(ActionVerb.PLACE, "desk_01"))
        assert ctx.tracker.state == RobotState.MOVING_WHILE_HOLDING

    @pytest.mark.asyncio
    async def test_controller_error_during_place_fails_fast(self, task_maker, sink):
        """放置过程中控制器异常: 立即 FAILURE 而不是等到超时"""
        ctx = task_maker.context
        await run(PickStateMachine(ctx), act(ActionVerb.PICK, "laptop"))

        async def broken_face(target_position):
            raise RuntimeError("arm driver offline")

        ctx.manipulator.face = broken_face
        result = await run(PlaceStateMachine(ctx), act(ActionVerb.PLACE, "desk_01"))

        assert result.status == OutcomeStatus.FAILURE
        assert result.error_kind == ErrorKind.INTERNAL
        assert result.detail == "arm driver offline"
        assert result.elapsed < task_maker.config.get("execution.place_timeout")
        assert ctx.tracker.state == RobotState.PICKING
        assert ctx.tracker.held_object.name == "laptop"
        assert not any(t.startswith("place:") for t in sink.texts)


@pytest.mark.unit
class TestDeviceStateMachines:
    """门与开关状态机测试类"""

    @pytest.mark.asyncio
    async def test_open_door(self, task_maker, sink):
        ctx = task_maker.context
        result = await run(OpenDoorStateMachine(ctx), act(ActionVerb.OPEN, "door_03"))

        assert result.status == OutcomeStatus.SUCCESS
        assert ctx.registry.find_by_name("door_03").door.is_open
        assert "open:door_03 state=OPEN" in sink.texts

    @pytest.mark.asyncio
    async def test_open_requires_door(self, task_maker):
        machine = OpenDoorStateMachine(task_maker.context)
        with pytest.raises(CapabilityMissing):
            await machine.start(act(ActionVerb.OPEN, "laptop"))
        with pytest.raises(TargetNotFound):
            await machine.start(act(ActionVerb.OPEN, "ghost"))

    @pytest.mark.asyncio
    async def test_switch_verbs(self, task_maker, sink):
        ctx = task_maker.context
        machine = SwitchStateMachine(ctx)
        lamp = ctx.registry.find_by_name("lamp_02").switch

        await run(machine, act(ActionVerb.SWITCH_ON, "lamp_02"))
        assert lamp.is_on
        await run(machine, act(ActionVerb.SWITCH_TOGGLE, "lamp_02"))
        assert not lamp.is_on
        await run(machine, act(ActionVerb.SWITCH_OFF, "lamp_02"))
        assert not lamp.is_on

        assert sink.texts[-3:] == [
            "switch:lamp_02 state=ON",
            "switch:lamp_02 state=OFF",
            "switch:lamp_02 state=OFF"
        ]

    @pytest.mark.asyncio
    async def test_switch_falls_back_to_name_scan(self, task_maker):
        ctx = task_maker.context
        ctx.registry.add(WorldEntity(name="panel"))
        device = SwitchDevice("Panel")
        ctx.registry.add(WorldEntity(name="Panel", switch=device))

        result = await run(SwitchStateMachine(ctx), act(ActionVerb.SWITCH_ON, "PANEL"))

        assert result.status == OutcomeStatus.SUCCESS
        assert device.is_on

    @pytest.mark.asyncio
    async def test_switch_errors(self, task_maker):
        machine = SwitchStateMachine(task_maker.context)
        with pytest.raises(CapabilityMissing):
            await machine.start(act(ActionVerb.SWITCH_ON, "laptop"))
        with pytest.raises(TargetNotFound):
            await machine.start(act(ActionVerb.SWITCH_ON, "ghost"))
