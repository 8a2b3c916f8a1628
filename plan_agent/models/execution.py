"""
执行会话数据模型
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..exceptions import InvalidSessionStatusError
from .plan import ExecutionPlan, TeamSummary
from .storage import StorageResult


class SessionStatus(Enum):
    """会话状态枚举"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: Union["SessionStatus", str]) -> "SessionStatus":
        """校验并转换状态值，未知值抛出 InvalidSessionStatusError"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidSessionStatusError(
                f"Invalid session status: {value!r}. Expected one of: {allowed}"
            ) from None


@dataclass
class ExecutionSession:
    """执行会话

    由调度核心独占；外部只能读取或通过核心接口请求状态变更
    """
    id: str
    generated_at: datetime
    admin_user_id: str
    status: SessionStatus = SessionStatus.PENDING
    team_id: Optional[str] = None
    plans: List[ExecutionPlan] = field(default_factory=list)
    team_summary: Optional[TeamSummary] = None
    delivery_ids: List[str] = field(default_factory=list)
    error_message: Optional[str] = None
    storage_results: List[StorageResult] = field(default_factory=list)
    retry_count: int = 0
    last_retry_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def is_pending(self) -> bool:
        return self.status == SessionStatus.PENDING

    def is_failed(self) -> bool:
        return self.status == SessionStatus.FAILED

    @property
    def delivery_deficit(self) -> int:
        """未成功投递的个人计划数（不含团队汇总）"""
        return max(len(self.plans) - len(self.delivery_ids), 0)

    def get_duration(self) -> Optional[float]:
        """获取执行时长（秒）"""
        if self.completed_at:
            return (self.completed_at - self.generated_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "id": self.id,
            "generated_at": self.generated_at.isoformat(),
            "status": self.status.value,
            "admin_user_id": self.admin_user_id,
            "team_id": self.team_id,
            "plans": [p.to_dict() for p in self.plans],
            "team_summary": self.team_summary.to_dict() if self.team_summary else None,
            "delivery_ids": list(self.delivery_ids),
            "error_message": self.error_message,
            "storage_results": [r.to_dict() for r in self.storage_results],
            "retry_count": self.retry_count,
            "last_retry_at": self.last_retry_at.isoformat() if self.last_retry_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ExecutionStats:
    """会话统计"""
    total_sessions: int = 0
    pending_sessions: int = 0
    confirmed_sessions: int = 0
    completed_sessions: int = 0
    failed_sessions: int = 0
    retried_sessions: int = 0
    success_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScheduleConfig:
    """调度配置值对象，交给计时器后不可变"""
    cron_expression: str
    timezone: str
    admin_user_id: str
    enabled: bool = True
    team_id: Optional[str] = None
    summary_channel_id: Optional[str] = None
    summary_user_group_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScheduleInfo:
    """当前已挂载的调度信息"""
    config: ScheduleConfig
    created_at: datetime
    next_execution: Optional[datetime] = None
    last_execution: Optional[datetime] = None
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "created_at": self.created_at.isoformat(),
            "next_execution": self.next_execution.isoformat() if self.next_execution else None,
            "last_execution": self.last_execution.isoformat() if self.last_execution else None,
            "is_active": self.is_active,
        }
