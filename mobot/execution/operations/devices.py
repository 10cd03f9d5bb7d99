"""
设备状态机 - Open / Switch

两者都是单次同步调用: 解析目标、检查能力、改变状态。
门在打开后等待 door_settle_wait 再完成, 开关立即完成。
"""

from loguru import logger

from mobot.common.exceptions import CapabilityMissing, TargetNotFound
from mobot.execution.operations.base import ActionHandle, ActionStateMachine, PollStatus
from mobot.models.action import Action, ActionVerb
from mobot.state.capabilities import Capability
from mobot.state.world_registry import WorldEntity


class OpenDoorStateMachine(ActionStateMachine):
    """打开门"""

    verbs = (ActionVerb.OPEN,)

    async def start(self, action: Action) -> ActionHandle:
        registry = self.context.registry
        target = registry.find_by_name(action.argument)
        if target is None:
            raise TargetNotFound(f"target not found: {action.argument}")

        node = registry.find_capable(target, Capability.DOOR)
        if node is None:
            raise CapabilityMissing(f"{target.name} has no door")

        node.door.open()
        self.context.aggregator.record("open", target.name, state=node.door.is_open)
        logger.info(f"开门: {target.name}")

        return self.new_handle(action, node)

    def poll(self, handle: ActionHandle) -> PollStatus:
        if self.settled(handle, float(self.config.get("devices.door_settle_wait", 0.25))):
            handle.finished = True
            return PollStatus.DONE
        return PollStatus.PENDING


class SwitchStateMachine(ActionStateMachine):
    """接通 / 断开 / 翻转开关"""

    verbs = (ActionVerb.SWITCH_ON, ActionVerb.SWITCH_OFF, ActionVerb.SWITCH_TOGGLE)

    async def start(self, action: Action) -> ActionHandle:
        node = self.resolve(action.argument)
        device = node.switch

        if action.verb == ActionVerb.SWITCH_ON:
            device.switch_on()
        elif action.verb == ActionVerb.SWITCH_OFF:
            device.switch_off()
        else:
            device.toggle()

        self.context.aggregator.record("switch", action.argument, state=device.is_on)
        logger.info(f"开关 {node.name}: {'ON' if device.is_on else 'OFF'}")

        handle = self.new_handle(action, node)
        handle.finished = True
        return handle

    def resolve(self, name: str) -> WorldEntity:
        """
        先在同名实体及其后代中查找开关能力,
        找不到时在全表中按名称(大小写无关)扫描
        """
        registry = self.context.registry
        target = registry.find_by_name(name)

        node = registry.find_capable(target, Capability.SWITCH) if target is not None else None
        if node is None:
            node = registry.scan_by_name(name, Capability.SWITCH)
        if node is not None:
            return node

        if target is None:
            raise TargetNotFound(f"target not found: {name}")
        raise CapabilityMissing(f"{target.name} has no switch")

    def poll(self, handle: ActionHandle) -> PollStatus:
        return PollStatus.DONE
