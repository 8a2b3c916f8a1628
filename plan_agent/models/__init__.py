"""
数据模型

包含系统的核心数据模型：
- Person / Team / Ticket (工单源快照)
- ExecutionPlan / TeamSummary (计划)
- ExecutionSession (执行会话)
- StorageResult (写回结果)
"""

from .ticket import Person, Team, Ticket, TicketState
from .plan import ExecutionPlan, TeamSummary, ExecutionPlanMetadata
from .storage import StorageResult
from .execution import (
    ExecutionSession,
    ExecutionStats,
    ScheduleConfig,
    ScheduleInfo,
    SessionStatus,
)

__all__ = [
    "Person",
    "Team",
    "Ticket",
    "TicketState",
    "ExecutionPlan",
    "TeamSummary",
    "ExecutionPlanMetadata",
    "StorageResult",
    "ExecutionSession",
    "ExecutionStats",
    "ScheduleConfig",
    "ScheduleInfo",
    "SessionStatus",
]
