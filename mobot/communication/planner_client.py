"""
规划器接口 - Planner Client

远程规划服务把自然语言指令转成 plan_sequence (如 "move(desk_01)");
网络传输不在本包范围内, 这里只定义接口和响应结构。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class PlanMetadata:
    """规划元数据"""
    processing_time: float = 0.0
    status: str = ""
    steps_count: int = 0
    original_input: str = ""
    session_id: str = ""
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PlanMetadata':
        data = data or {}
        return cls(
            processing_time=float(data.get("processing_time") or 0.0),
            status=str(data.get("status") or ""),
            steps_count=int(data.get("steps_count") or 0),
            original_input=str(data.get("original_input") or ""),
            session_id=str(data.get("session_id") or ""),
            timestamp=str(data.get("timestamp") or "")
        )


@dataclass
class PlanResponse:
    """规划响应"""
    success: bool
    plan_sequence: List[str] = field(default_factory=list)
    metadata: PlanMetadata = field(default_factory=PlanMetadata)
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlanResponse':
        """从规划服务返回的 JSON 字典构造"""
        steps = data.get("plan_sequence") or []
        return cls(
            success=bool(data.get("success", False)),
            plan_sequence=[str(s) for s in steps],
            metadata=PlanMetadata.from_dict(data.get("metadata")),
            error=data.get("error")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "plan_sequence": list(self.plan_sequence),
            "metadata": self.metadata.__dict__.copy(),
            "error": self.error
        }


def new_session_id(prefix: str = "mobot_session") -> str:
    return f"{prefix}_{datetime.now():%Y%m%d_%H%M%S}"


class PlannerClient(ABC):
    """规划服务客户端"""

    @abstractmethod
    async def request_plan(self, user_input: str, session_id: str) -> PlanResponse:
        """
        请求规划

        传输失败时返回 success=False 且带 error 的响应, 不抛出异常
        """
