"""
TaskMaker - 操作员与规划器的统一入口

负责:
- 单条指令 / 多行脚本 -> 动作队列
- 规划器响应 -> 计划摘要 + 批量执行
- 组装注册表、控制器、状态跟踪、更新聚合与调度器
"""

from typing import Any, Dict, Optional

from loguru import logger

from mobot.common.config import Config
from mobot.communication.planner_client import PlannerClient, PlanResponse, new_session_id
from mobot.communication.report_sink import LoggingReportSink, ReportSink, Severity
from mobot.communication.robot_interface import LocomotionController, ManipulationController
from mobot.execution.executor import TaskScheduler
from mobot.execution.operations.base import ExecutionContext
from mobot.geometry.bounds import Pose
from mobot.geometry.placement import PlacementSolver
from mobot.models.action import lookup_verb
from mobot.models.action_parser import ActionParser
from mobot.simulation.robot import SimulatedLocomotion, SimulatedManipulator
from mobot.simulation.scene import build_demo_world
from mobot.state.robot_state import RobotStateTracker
from mobot.state.update_aggregator import UpdateAggregator
from mobot.state.world_registry import InMemoryWorldRegistry, WorldRegistry


class TaskMaker:
    """
    TaskMaker

    submit() 接收操作员文本, handle_plan_response() 接收规划器结果,
    两者都只入队, 执行由调度器在事件循环中完成
    """

    def __init__(
        self,
        config: Config,
        registry: WorldRegistry,
        locomotion: LocomotionController,
        manipulator: ManipulationController,
        sink: Optional[ReportSink] = None,
        planner: Optional[PlannerClient] = None
    ):
        self.config = config
        self.registry = registry
        self.sink = sink or LoggingReportSink()
        self.planner = planner

        self.tracker = RobotStateTracker()
        self.tracker.bind(manipulator)

        self.aggregator = UpdateAggregator(
            sink=self.sink,
            max_history=int(config.get("execution.max_history", 1000))
        )

        self.context = ExecutionContext(
            config=config,
            registry=registry,
            locomotion=locomotion,
            manipulator=manipulator,
            tracker=self.tracker,
            aggregator=self.aggregator,
            placement=PlacementSolver.from_config(config.section("placement"))
        )
        self.scheduler = TaskScheduler(self.context, sink=self.sink)
        self.parser = ActionParser()

        logger.info(f"TaskMaker 初始化完成 (世界注册表: {type(registry).__name__})")

    @classmethod
    def create_simulated(
        cls,
        config: Optional[Config] = None,
        registry: Optional[InMemoryWorldRegistry] = None,
        sink: Optional[ReportSink] = None,
        planner: Optional[PlannerClient] = None,
        speed: float = 2.0
    ) -> 'TaskMaker':
        """
        用内存仿真控制器组装 TaskMaker

        未给出注册表时使用演示场景
        """
        config = config or Config()
        if registry is None:
            registry = build_demo_world(InMemoryWorldRegistry())

        body = Pose((0.0, 0.0, 0.0), 0.0)
        locomotion = SimulatedLocomotion(body, speed=speed)
        manipulator = SimulatedManipulator(
            registry,
            body,
            pick_attach_delay=float(config.get("manipulation.pick_attach_delay", 2.2)),
            rotate_speed_deg=float(config.get("manipulation.rotate_speed_deg", 360.0)),
            facing_angle_threshold=float(config.get("manipulation.facing_angle_threshold", 5.0))
        )
        return cls(config, registry, locomotion, manipulator, sink=sink, planner=planner)

    # ==================== 操作员输入 ====================

    def submit(self, text: str) -> bool:
        """
        提交操作员文本

        多行文本作为脚本: 打开批量窗口, 整体入队;
        单行作为一条指令, 其更新立即输出

        Returns:
            是否有动作入队
        """
        stripped = (text or "").strip()
        if not stripped:
            return False

        if "\n" in stripped:
            return self._submit_script(stripped)

        action = self.parser.parse_command(stripped)
        if action is None:
            verb, rest = self.parser.split_command(stripped)
            if lookup_verb(verb) is None:
                self._report(f"Unknown command: '{verb}'", Severity.ERROR)
            else:
                self._report(f"wrong format: {verb} [target]", Severity.ERROR)
            return False

        return self.scheduler.enqueue(action)

    def _submit_script(self, script: str) -> bool:
        result = self.parser.parse_detailed(script)
        for error in result.errors:
            self._report(f"line {error.line_number} skipped: {error.line.strip()} ({error.message})", Severity.WARNING)

        if not result.actions:
            self._report("No valid steps in script.", Severity.ERROR)
            return False

        self._report(f"Script loaded: {len(result.actions)} steps", Severity.INFO)
        return self.scheduler.enqueue_plan(result.actions, batch=True)

    # ==================== 规划器 ====================

    def handle_plan_response(self, response: PlanResponse) -> bool:
        """
        处理规划器响应

        显示计划摘要; auto_execute_plan 打开时以批量方式入队
        """
        if not response.success:
            self._report(f"Planning FAILED\nError: {response.error or 'unknown error'}", Severity.ERROR)
            return False

        lines = [f"Command > {response.metadata.original_input}", "", "Status: SUCCESS"]
        if response.metadata.processing_time:
            lines.append(f"Time: {response.metadata.processing_time:.2f}s")
        lines.append(f"Output ({len(response.plan_sequence)} steps):")
        lines.extend(f"  {i}. {step}" for i, step in enumerate(response.plan_sequence, start=1))
        self._report("\n".join(lines), Severity.SUCCESS)

        if not self.config.get("planner.auto_execute_plan", True) or not response.plan_sequence:
            return False

        actions = self.parser.parse("\n".join(response.plan_sequence))
        if not actions:
            self._report("Plan contains no executable steps.", Severity.ERROR)
            return False
        return self.scheduler.enqueue_plan(actions, batch=True)

    async def submit_natural_language(self, text: str, session_id: Optional[str] = None) -> bool:
        """把自然语言指令转交规划器, 并处理返回的计划"""
        if self.planner is None:
            self._report("Planner is not configured.", Severity.ERROR)
            return False

        text = text.strip()
        self._report(f"Processing... '{text}'", Severity.PROGRESS)
        response = await self.planner.request_plan(text, session_id or new_session_id())
        return self.handle_plan_response(response)

    # ==================== 状态 ====================

    async def wait_until_idle(self):
        await self.scheduler.wait_until_idle()

    def is_busy(self) -> bool:
        return self.scheduler.is_busy()

    def get_status(self) -> Dict[str, Any]:
        held = self.tracker.held_object
        return {
            "robot_state": self.tracker.state.value,
            "held_object": held.name if held else None,
            "busy": self.scheduler.is_busy(),
            "pending": [str(a) for a in self.scheduler.pending_actions()],
            "statistics": self.scheduler.monitor.get_statistics()
        }

    def _report(self, text: str, severity: Severity):
        self.sink.show_message(text, severity)
