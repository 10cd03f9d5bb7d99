"""
动作定义 - Action

一条符号化指令: 动词 + 参数, 解析后不可变, 由执行器恰好消费一次
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from mobot.common.exceptions import ErrorKind


class ActionVerb(Enum):
    """动作动词"""
    MOVE = "move"
    PICK = "pick"
    PLACE = "place"
    OPEN = "open"
    SWITCH_ON = "switchon"
    SWITCH_OFF = "switchoff"
    SWITCH_TOGGLE = "switch"

    @property
    def is_switch(self) -> bool:
        return self in (ActionVerb.SWITCH_ON, ActionVerb.SWITCH_OFF, ActionVerb.SWITCH_TOGGLE)


# 文本动词 → ActionVerb (小写匹配)
VERB_ALIASES: Dict[str, ActionVerb] = {
    "move": ActionVerb.MOVE,
    "pick": ActionVerb.PICK,
    "place": ActionVerb.PLACE,
    "open": ActionVerb.OPEN,
    "switchon": ActionVerb.SWITCH_ON,
    "switch_on": ActionVerb.SWITCH_ON,
    "switchoff": ActionVerb.SWITCH_OFF,
    "switch_off": ActionVerb.SWITCH_OFF,
    "switch": ActionVerb.SWITCH_TOGGLE,
    "toggle": ActionVerb.SWITCH_TOGGLE
}


def lookup_verb(text: str) -> Optional[ActionVerb]:
    """大小写无关地查找动词"""
    return VERB_ALIASES.get(text.strip().lower())


@dataclass(frozen=True)
class Action:
    """
    符号化动作

    verb/argument 决定语义; raw 与 line_number 只用于报告
    """
    verb: ActionVerb
    argument: str
    raw: str = field(default="", compare=False)
    line_number: int = field(default=0, compare=False)

    def __str__(self) -> str:
        return f"{self.verb.value}({self.argument})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verb": self.verb.value,
            "argument": self.argument,
            "raw": self.raw,
            "line_number": self.line_number
        }


class OutcomeStatus(Enum):
    """动作执行结果"""
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


@dataclass
class ExecutionOutcome:
    """
    单个动作的最终执行结果

    每个动作只产生一次, 不会自动重试
    """
    action: Action
    status: OutcomeStatus
    detail: str = ""
    error_kind: Optional[ErrorKind] = None
    timestamp: datetime = field(default_factory=datetime.now)
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.to_dict(),
            "status": self.status.value,
            "detail": self.detail,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration
        }
