"""
基础设施模块

包含系统的基础设施组件：
- MCP Client (工具调用)
- 工单源网关 (Linear)
- 消息网关 (Slack)
"""

from .mcp_client import MCPClient, MCPToolError
from .ticket_gateway import TicketSourceGateway, McpTicketGateway
from .messaging_gateway import DestinationDirectory, MessagingGateway, McpMessagingGateway

__all__ = [
    "MCPClient",
    "MCPToolError",
    "TicketSourceGateway",
    "McpTicketGateway",
    "DestinationDirectory",
    "MessagingGateway",
    "McpMessagingGateway"
]
