"""
执行计划数据模型
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .ticket import Ticket


@dataclass
class ExecutionPlan:
    """个人执行计划

    三个分组互斥，合起来覆盖过滤并截断后的工单集合
    """
    plan_id: str
    user_id: str
    user_name: str
    finished: List[Ticket] = field(default_factory=list)
    in_progress: List[Ticket] = field(default_factory=list)
    open: List[Ticket] = field(default_factory=list)
    summary: str = ""
    generated_at: datetime = field(default_factory=datetime.now)

    def all_tickets(self) -> List[Ticket]:
        """按 finished -> in_progress -> open 顺序返回全部工单"""
        return [*self.finished, *self.in_progress, *self.open]

    @property
    def ticket_count(self) -> int:
        return len(self.finished) + len(self.in_progress) + len(self.open)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "plan_id": self.plan_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "tickets": {
                "finished": [t.to_dict() for t in self.finished],
                "in_progress": [t.to_dict() for t in self.in_progress],
                "open": [t.to_dict() for t in self.open],
            },
            "summary": self.summary,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class TeamSummary:
    """团队汇总

    completion_rate 基于团队未截断的原始计数，可能与 plans 的截断计数之和不一致
    """
    team_id: str
    team_name: str
    total_tickets: int = 0
    completed_tickets: int = 0
    in_progress_tickets: int = 0
    open_tickets: int = 0
    completion_rate: float = 0.0
    plans: List[ExecutionPlan] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)

    @staticmethod
    def calculate_completion_rate(completed: int, total: int) -> float:
        """完成率百分比，total 为 0 时返回 0"""
        if total <= 0:
            return 0.0
        return completed / total * 100

    @property
    def formatted_completion_rate(self) -> str:
        return f"{self.completion_rate:.2f}%"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "total_tickets": self.total_tickets,
            "completed_tickets": self.completed_tickets,
            "in_progress_tickets": self.in_progress_tickets,
            "open_tickets": self.open_tickets,
            "completion_rate": round(self.completion_rate, 2),
            "plans": [p.to_dict() for p in self.plans],
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class ExecutionPlanMetadata:
    """写回到工单自定义字段中的计划元数据"""
    ticket_id: str
    plan_id: str
    last_plan_date: str
    user_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "plan_id": self.plan_id,
            "last_plan_date": self.last_plan_date,
            "user_id": self.user_id,
        }
