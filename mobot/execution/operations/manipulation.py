"""
操作状态机 - Pick / Place

完成信号有两路: 操作器的 attach/place 边沿事件, 以及 is_holding() 轮询,
先到者为准。
"""

import asyncio
from typing import Optional

from loguru import logger

from mobot.common.exceptions import ExecutionError, PreconditionViolation, TargetNotFound
from mobot.execution.operations.base import ActionHandle, ActionStateMachine, PollStatus
from mobot.geometry.placement import ProbeHit
from mobot.models.action import Action, ActionVerb
from mobot.state.robot_state import RobotState
from mobot.state.world_registry import WorldEntity


class PickStateMachine(ActionStateMachine):
    """抓取命名物体"""

    verbs = (ActionVerb.PICK,)
    timeout_key = "execution.pick_timeout"

    async def start(self, action: Action) -> ActionHandle:
        ctx = self.context
        target = ctx.registry.find_by_name(action.argument)
        if target is None:
            raise TargetNotFound(f"target not found: {action.argument}")

        if ctx.tracker.is_holding or ctx.manipulator.is_holding():
            held = ctx.tracker.held_object or ctx.manipulator.held_entity
            raise PreconditionViolation(f"already holding {held.name if held else 'an object'}")

        handle = self.new_handle(action, target)

        def on_attach(entity: WorldEntity):
            if entity is target:
                handle.data["attached"] = True

        ctx.manipulator.on_attach.connect(on_attach)
        handle.cleanups.append(lambda: ctx.manipulator.on_attach.disconnect(on_attach))

        logger.info(f"抓取 {target.name}")
        ctx.manipulator.pick(target)
        return handle

    def poll(self, handle: ActionHandle) -> PollStatus:
        ctx = self.context
        if not handle.data.get("attached") and not ctx.manipulator.is_holding():
            return PollStatus.PENDING

        # 跟踪器未绑定操作器事件时在这里同步所有权
        if not ctx.tracker.is_holding and ctx.manipulator.held_entity is not None:
            ctx.tracker.take_ownership(ctx.manipulator.held_entity)

        handle.finished = True
        logger.info(f"抓取完成: {handle.entity.name}")
        return PollStatus.DONE

    def cancel(self, handle: ActionHandle):
        logger.warning(f"抓取超时, 取消吸附: {handle.entity.name}")
        self.context.manipulator.cancel_pick()


class PlaceStateMachine(ActionStateMachine):
    """
    把手中物体放到命名表面上

    PICKING -> PLACING -> IDLE; 放置前物体丢失或无法求解时回到 PICKING
    """

    verbs = (ActionVerb.PLACE,)
    timeout_key = "execution.place_timeout"

    async def start(self, action: Action) -> ActionHandle:
        ctx = self.context
        target = ctx.registry.find_by_name(action.argument)
        if target is None:
            raise TargetNotFound(f"target not found: {action.argument}")

        held = ctx.manipulator.held_entity
        if held is None or not ctx.tracker.is_holding:
            raise PreconditionViolation("nothing in hand")

        if ctx.tracker.state != RobotState.PICKING:
            raise PreconditionViolation(f"place needs state picking, current {ctx.tracker.state.value}")
        ctx.tracker.transition(RobotState.PLACING, str(action))

        handle = self.new_handle(action, target)
        handle.data["held"] = held

        def on_place(entity: WorldEntity):
            if entity is held:
                handle.data["placed"] = True

        ctx.manipulator.on_place.connect(on_place)
        handle.cleanups.append(lambda: ctx.manipulator.on_place.disconnect(on_place))

        logger.info(f"放置 {held.name} -> {target.name}")
        handle.data["task"] = asyncio.get_running_loop().create_task(self._place(handle, target, held))
        return handle

    def poll(self, handle: ActionHandle) -> PollStatus:
        if handle.error is not None:
            return PollStatus.FAILED
        if handle.data.get("placed") or handle.finished:
            handle.finished = True
            return PollStatus.DONE
        return PollStatus.PENDING

    def cancel(self, handle: ActionHandle):
        self._stop_task(handle)
        # 超时后仍然持有物体
        if self.context.tracker.state == RobotState.PLACING:
            self.context.tracker.transition(RobotState.PICKING, "place timeout")
        logger.warning(f"放置超时: {handle.entity.name}")

    def release(self, handle: ActionHandle):
        self._stop_task(handle)
        super().release(handle)

    @staticmethod
    def _stop_task(handle: ActionHandle):
        task: Optional[asyncio.Task] = handle.data.get("task")
        if task is not None and not task.done():
            task.cancel()

    async def _place(self, handle: ActionHandle, target: WorldEntity, held: WorldEntity):
        try:
            await self._do_place(handle, target, held)
        except ExecutionError as e:
            self._abort(handle, e)
        except Exception as e:
            logger.error(f"放置过程异常: {handle.action}: {e}")
            self._abort(handle, ExecutionError(str(e)))

    async def _do_place(self, handle: ActionHandle, target: WorldEntity, held: WorldEntity):
        ctx = self.context

        await ctx.manipulator.face(target.position)
        await asyncio.sleep(float(self.config.get("manipulation.place_detach_delay", 2.17)))

        if ctx.manipulator.held_entity is not held:
            self._abort(handle, PreconditionViolation(f"{held.name} is no longer in hand"))
            return

        def accept_hit(hit: ProbeHit) -> bool:
            return ctx.registry.is_descendant(ctx.registry.find_by_name(hit.entity_name), target)

        solution = ctx.placement.solve(
            held_bounds=ctx.registry.bounds_of(held),
            target_bounds=ctx.registry.bounds_of(target),
            target_pose=target.pose,
            robot_position=ctx.locomotion.position,
            held_pivot=held.position,
            held_yaw=held.yaw,
            probe=ctx.registry.raycast_down,
            accept_hit=accept_hit
        )
        if solution is None:
            self._abort(handle, PreconditionViolation(f"no placement bounds for {target.name}"))
            return

        placed = ctx.manipulator.release(solution.position, solution.yaw, self._container_for(target))
        if placed is None:
            self._abort(handle, PreconditionViolation(f"{held.name} is no longer in hand"))
            return

        if ctx.tracker.is_holding:
            ctx.tracker.release_ownership()

        ctx.aggregator.record("place", placed.name, position=placed.position)
        handle.finished = True
        logger.info(f"放置完成: {placed.name} @ {placed.position.round(2).tolist()}")

    def _container_for(self, target: WorldEntity) -> Optional[WorldEntity]:
        """目标所在房间的物体容器, 不在任何房间中时返回 None"""
        registry = self.context.registry
        room = registry.room_root_of(target, self.config.get("world.room_roots", []))
        if room is None:
            return None
        return registry.get_or_create_container(room, self.config.get("world.object_container", "object"))

    def _abort(self, handle: ActionHandle, error: ExecutionError):
        tracker = self.context.tracker
        if tracker.state == RobotState.PLACING and tracker.is_holding:
            tracker.transition(RobotState.PICKING, "place aborted")
        logger.error(f"放置失败: {error.message}")
        handle.fail(error)
