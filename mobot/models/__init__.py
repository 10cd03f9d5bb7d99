"""
数据模型
"""

from mobot.models.action import (
    ActionVerb,
    Action,
    OutcomeStatus,
    ExecutionOutcome,
    VERB_ALIASES,
    lookup_verb
)
from mobot.models.action_parser import ActionParser, ParseResult

__all__ = [
    "ActionVerb",
    "Action",
    "OutcomeStatus",
    "ExecutionOutcome",
    "VERB_ALIASES",
    "lookup_verb",
    "ActionParser",
    "ParseResult"
]
