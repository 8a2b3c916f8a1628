"""
工单源网关抽象与 MCP 实现

- TicketSourceGateway: 计划生成与写回层依赖的接口
- McpTicketGateway: 通过 Linear MCP 工具服务器实现

替换工单源时只需提供新的 TicketSourceGateway 实现
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..models.ticket import Person, Team, Ticket
from .mcp_client import MCPClient

logger = logging.getLogger(__name__)


class TicketSourceGateway:
    """工单源网关抽象接口"""

    async def query_by_assignee(self, person_id: str) -> List[Ticket]:
        raise NotImplementedError

    async def query_by_team(self, team_id: str) -> List[Ticket]:
        raise NotImplementedError

    async def list_people(self, team_scope: Optional[str] = None) -> List[Person]:
        raise NotImplementedError

    async def get_team(self, team_id: str) -> Optional[Team]:
        raise NotImplementedError

    async def append_comment(self, ticket_id: str, text: str) -> None:
        raise NotImplementedError

    async def write_custom_fields(self, ticket_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def read_custom_fields(self, ticket_id: str, field_ids: List[str]) -> Dict[str, Any]:
        raise NotImplementedError

    async def ensure_field_schema(self, team_id: str, field_spec: Dict[str, Dict[str, Any]]) -> None:
        raise NotImplementedError


class McpTicketGateway(TicketSourceGateway):
    """基于 Linear MCP 工具服务器的实现"""

    def __init__(self, mcp_client: MCPClient):
        self.mcp_client = mcp_client

    async def query_by_assignee(self, person_id: str) -> List[Ticket]:
        data = await self.mcp_client.call_tool("get_issues_by_assignee", {"assigneeId": person_id})
        return [Ticket.from_dict(item) for item in self._items(data, "issues")]

    async def query_by_team(self, team_id: str) -> List[Ticket]:
        data = await self.mcp_client.call_tool("get_issues_by_filter", {"teamId": team_id})
        return [Ticket.from_dict(item) for item in self._items(data, "issues")]

    async def list_people(self, team_scope: Optional[str] = None) -> List[Person]:
        arguments = {"teamId": team_scope} if team_scope else {}
        data = await self.mcp_client.call_tool("get_users", arguments)
        return [Person.from_dict(item) for item in self._items(data, "users")]

    async def get_team(self, team_id: str) -> Optional[Team]:
        data = await self.mcp_client.call_tool("get_teams", {})
        for item in self._items(data, "teams"):
            if item.get("id") == team_id:
                return Team.from_dict(item)
        return None

    async def append_comment(self, ticket_id: str, text: str) -> None:
        await self.mcp_client.call_tool("add_issue_comment", {"issueId": ticket_id, "comment": text})

    async def write_custom_fields(self, ticket_id: str, fields: Dict[str, Any]) -> None:
        await self.mcp_client.call_tool("update_issue_custom_fields", {"issueId": ticket_id, "fields": fields})

    async def read_custom_fields(self, ticket_id: str, field_ids: List[str]) -> Dict[str, Any]:
        data = await self.mcp_client.call_tool(
            "get_issue_custom_fields", {"issueId": ticket_id, "fieldIds": field_ids}
        )
        if isinstance(data, dict):
            return data.get("fields", data)
        return {}

    async def ensure_field_schema(self, team_id: str, field_spec: Dict[str, Dict[str, Any]]) -> None:
        await self.mcp_client.call_tool(
            "ensure_custom_field_definitions", {"teamId": team_id, "fields": field_spec}
        )

    @staticmethod
    def _items(data: Any, key: str) -> List[Dict[str, Any]]:
        """兼容 {key: [...]} 与直接返回列表两种响应格式"""
        if isinstance(data, dict):
            return data.get(key) or []
        if isinstance(data, list):
            return data
        logger.warning(f"Unexpected MCP payload for {key}: {type(data).__name__}")
        return []
