"""
执行层异常类定义
"""

from enum import Enum


class ErrorKind(Enum):
    """错误类别"""
    PARSE_ERROR = "parse_error"                       # 行格式无法识别
    TARGET_NOT_FOUND = "target_not_found"             # 世界中不存在目标
    CAPABILITY_MISSING = "capability_missing"         # 目标缺少所需能力
    PRECONDITION_VIOLATION = "precondition_violation" # 前置条件不满足
    TIMEOUT = "timeout"                               # 等待完成信号超时
    ACTUATOR_REJECTED = "actuator_rejected"           # 执行器拒绝状态转换
    INTERNAL = "internal"                             # 未预期的异常


class ExecutionError(Exception):
    """执行层基础异常"""
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ParseError(ExecutionError):
    """指令行解析失败"""
    kind = ErrorKind.PARSE_ERROR

    def __init__(self, message: str, line: str = "", line_number: int = 0):
        super().__init__(message)
        self.line = line
        self.line_number = line_number


class TargetNotFound(ExecutionError):
    """目标实体不存在"""
    kind = ErrorKind.TARGET_NOT_FOUND


class CapabilityMissing(ExecutionError):
    """目标实体缺少能力（门/开关/表面）"""
    kind = ErrorKind.CAPABILITY_MISSING


class PreconditionViolation(ExecutionError):
    """前置条件不满足"""
    kind = ErrorKind.PRECONDITION_VIOLATION


class ActuatorRejected(ExecutionError):
    """机器人当前状态不允许该转换"""
    kind = ErrorKind.ACTUATOR_REJECTED


class StepTimeout(ExecutionError):
    """等待异步完成信号超时"""
    kind = ErrorKind.TIMEOUT
