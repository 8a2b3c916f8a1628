"""
消息网关抽象与 MCP 实现

- DestinationDirectory: 人员 -> 目的地、团队 -> 汇总频道 的显式映射表
- MessagingGateway: 调度核心依赖的发送接口
- McpMessagingGateway: 通过 Slack MCP 工具服务器实现
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from ..models.plan import ExecutionPlan, TeamSummary
from ..utils.config import Config
from .mcp_client import MCPClient

logger = logging.getLogger(__name__)


class DestinationDirectory:
    """目的地映射表

    找不到映射时返回 None，由调用方记录并跳过，不做任何猜测
    """

    def __init__(
        self,
        person_destinations: Optional[Dict[str, str]] = None,
        team_channels: Optional[Dict[str, str]] = None,
        default_summary_channel: Optional[str] = None,
    ):
        self.person_destinations = dict(person_destinations or {})
        self.team_channels = dict(team_channels or {})
        self.default_summary_channel = default_summary_channel or None

    @classmethod
    def from_config(cls, config: Config) -> "DestinationDirectory":
        return cls(
            person_destinations=config.get_dict("slack.user_mapping"),
            team_channels=config.get_dict("slack.team_channels"),
            default_summary_channel=config.get_string("slack.summary_channel_id") or None,
        )

    def register_person(self, person_id: str, destination: str):
        self.person_destinations[person_id] = destination

    def register_team(self, team_id: str, channel: str):
        self.team_channels[team_id] = channel

    def destination_for_person(self, person_id: str) -> Optional[str]:
        return self.person_destinations.get(person_id)

    def summary_destination(self, team_id: str) -> Optional[str]:
        return self.team_channels.get(team_id) or self.default_summary_channel


class MessagingGateway:
    """消息网关抽象接口"""

    def __init__(self, directory: Optional[DestinationDirectory] = None):
        self.directory = directory or DestinationDirectory()

    async def connect(self) -> None:
        raise NotImplementedError

    async def disconnect(self) -> None:
        raise NotImplementedError

    @asynccontextmanager
    async def connection(self) -> AsyncIterator["MessagingGateway"]:
        """作用域连接：进入时连接，退出时无论成功失败都断开"""
        await self.connect()
        try:
            yield self
        finally:
            await self.disconnect()

    async def send_plan_message(self, plan: ExecutionPlan, destination: str) -> str:
        raise NotImplementedError

    async def send_summary_message(self, summary: TeamSummary, destination: str) -> str:
        raise NotImplementedError

    async def resolve_destination_for_person(self, person_id: str) -> Optional[str]:
        return self.directory.destination_for_person(person_id)

    async def resolve_summary_destination(self, team_id: str) -> Optional[str]:
        return self.directory.summary_destination(team_id)


class McpMessagingGateway(MessagingGateway):
    """基于 Slack MCP 工具服务器的实现"""

    def __init__(self, mcp_client: MCPClient, directory: Optional[DestinationDirectory] = None):
        super().__init__(directory)
        self.mcp_client = mcp_client

    async def connect(self) -> None:
        await self.mcp_client.connect()

    async def disconnect(self) -> None:
        await self.mcp_client.close()

    async def send_plan_message(self, plan: ExecutionPlan, destination: str) -> str:
        data = await self.mcp_client.call_tool("send_execution_plan_message", {
            "userId": destination,
            "text": render_plan_text(plan),
            "plan": plan.to_dict(),
        })
        return self._message_id(data)

    async def send_summary_message(self, summary: TeamSummary, destination: str) -> str:
        data = await self.mcp_client.call_tool("send_team_summary_message", {
            "channelId": destination,
            "text": render_summary_text(summary),
            "summary": summary.to_dict(),
        })
        return self._message_id(data)

    @staticmethod
    def _message_id(data: Any) -> str:
        if isinstance(data, dict):
            message_id = data.get("messageId") or data.get("ts") or data.get("id")
            if message_id:
                return str(message_id)
        elif isinstance(data, str) and data:
            return data
        raise ValueError(f"Messaging response did not include a message id: {data!r}")


def render_plan_text(plan: ExecutionPlan) -> str:
    """个人计划的纯文本表示"""
    lines = [f"Execution plan for {plan.user_name}", plan.summary]
    for title, tickets in (("Finished", plan.finished), ("In progress", plan.in_progress), ("Open", plan.open)):
        if tickets:
            lines.append(f"{title}:")
            lines.extend(f"  - {t.identifier} {t.title}" for t in tickets)
    return "\n".join(lines)


def render_summary_text(summary: TeamSummary) -> str:
    """团队汇总的纯文本表示"""
    return (
        f"Team summary for {summary.team_name}: {summary.total_tickets} tickets, "
        f"{summary.completed_tickets} completed, {summary.in_progress_tickets} in progress, "
        f"{summary.open_tickets} open. Completion rate: {summary.formatted_completion_rate}"
    )
