"""
工单数据模型

Person / Team / Ticket 均为从工单源读取的只读快照
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class TicketState(Enum):
    """工单生命周期状态"""
    BACKLOG = "backlog"
    UNSTARTED = "unstarted"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELED = "canceled"


def _parse_datetime(value: Any) -> Optional[datetime]:
    """解析ISO8601时间，兼容 Z 结尾"""
    if value is None or isinstance(value, datetime):
        return value
    iso = str(value)
    if iso.endswith("Z"):
        iso = iso[:-1] + "+00:00"
    return datetime.fromisoformat(iso)


@dataclass(frozen=True)
class Person:
    """人员快照"""
    id: str
    display_name: str
    email: str = ""
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Person":
        return cls(
            id=data["id"],
            display_name=data.get("displayName") or data.get("display_name") or data.get("name") or data["id"],
            email=data.get("email", ""),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class Team:
    """团队"""
    id: str
    name: str
    key: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(id=data["id"], name=data.get("name", data["id"]), key=data.get("key"))


@dataclass(frozen=True)
class Ticket:
    """工单模型"""
    id: str
    identifier: str
    title: str
    state: TicketState
    priority: int = 0
    team_id: Optional[str] = None
    assignee_id: Optional[str] = None
    estimate: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ticket":
        """从工单源返回的JSON构建，兼容嵌套的 state/team/assignee 结构"""
        state = data.get("state")
        if isinstance(state, dict):
            state = state.get("type")
        team = data.get("team")
        team_id = team.get("id") if isinstance(team, dict) else data.get("team_id", team)
        assignee = data.get("assignee")
        assignee_id = assignee.get("id") if isinstance(assignee, dict) else data.get("assignee_id", assignee)

        return cls(
            id=data["id"],
            identifier=data.get("identifier", data["id"]),
            title=data.get("title", ""),
            state=TicketState(state),
            priority=int(data.get("priority") or 0),
            team_id=team_id,
            assignee_id=assignee_id,
            estimate=data.get("estimate"),
            created_at=_parse_datetime(data.get("createdAt", data.get("created_at"))),
            updated_at=_parse_datetime(data.get("updatedAt", data.get("updated_at"))),
            completed_at=_parse_datetime(data.get("completedAt", data.get("completed_at"))),
            url=data.get("url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        data = asdict(self)
        data["state"] = self.state.value
        for key in ("created_at", "updated_at", "completed_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data
