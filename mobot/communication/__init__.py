"""通信模块: 控制器接口、事件信号与报告出口"""
from mobot.communication.signals import Signal
from mobot.communication.report_sink import (
    LoggingReportSink,
    MemoryReportSink,
    ReportMessage,
    ReportSink,
    Severity
)
from mobot.communication.robot_interface import LocomotionController, ManipulationController
from mobot.communication.planner_client import PlanMetadata, PlanResponse, PlannerClient, new_session_id

__all__ = [
    "Signal",
    "LoggingReportSink",
    "MemoryReportSink",
    "ReportMessage",
    "ReportSink",
    "Severity",
    "LocomotionController",
    "ManipulationController",
    "PlanMetadata",
    "PlanResponse",
    "PlannerClient",
    "new_session_id"
]
