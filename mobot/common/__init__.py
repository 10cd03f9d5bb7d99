"""公共模块: 配置与异常"""
from mobot.common.config import Config, load_config
from mobot.common.exceptions import (
    ErrorKind,
    ExecutionError,
    ParseError,
    TargetNotFound,
    CapabilityMissing,
    PreconditionViolation,
    ActuatorRejected,
    StepTimeout
)

__all__ = [
    "Config",
    "load_config",
    "ErrorKind",
    "ExecutionError",
    "ParseError",
    "TargetNotFound",
    "CapabilityMissing",
    "PreconditionViolation",
    "ActuatorRejected",
    "StepTimeout"
]
