"""
MCP Client（基于FastMCP官方客户端）

Linear 与 Slack 都以 MCP 工具服务器的形式接入，这里提供统一的工具调用与结果解析
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastmcp import Client

logger = logging.getLogger(__name__)


class MCPToolError(Exception):
    """MCP 工具调用失败"""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"{tool_name}: {message}")


class MCPClient:
    """MCP Client实现（基于FastMCP官方客户端）"""

    def __init__(self, base_url: str, timeout_seconds: float = 30.0):
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._client: Optional[Client] = None
        self._connected = False
        logger.info(f"MCP Client initialized with URL: {self.base_url}")

    def _ensure_client(self) -> Client:
        """确保客户端已创建"""
        if self._client is None:
            self._client = Client(self.base_url)
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self):
        """建立长连接；已连接时为空操作"""
        if self._connected:
            return
        client = self._ensure_client()
        await client.__aenter__()
        self._connected = True
        logger.info(f"MCP session opened: {self.base_url}")

    async def close(self):
        """关闭MCP会话；未连接时为空操作"""
        if self._connected and self._client is not None:
            try:
                await self._client.__aexit__(None, None, None)
            finally:
                self._connected = False
                self._client = None
            logger.info("MCP session closed")

    async def ping(self) -> bool:
        """检查MCP服务器连接"""
        try:
            await self.list_tools()
            return True
        except Exception as e:
            logger.error(f"MCP ping failed: {e}")
            return False

    async def list_tools(self) -> list:
        """列出可用工具名"""
        if self._connected:
            tools = await self._client.list_tools()
        else:
            client = self._ensure_client()
            async with client:
                tools = await client.list_tools()
        return [tool.name for tool in tools]

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """调用工具并返回解析后的JSON载荷

        已连接时复用会话，否则为单次调用临时打开会话
        """
        logger.debug(f"Calling MCP tool {tool_name} with arguments: {arguments}")
        try:
            if self._connected:
                result = await asyncio.wait_for(
                    self._client.call_tool(tool_name, arguments),
                    timeout=self.timeout_seconds
                )
            else:
                client = self._ensure_client()
                async with client:
                    result = await asyncio.wait_for(
                        client.call_tool(tool_name, arguments),
                        timeout=self.timeout_seconds
                    )
        except asyncio.TimeoutError:
            raise MCPToolError(tool_name, f"timeout after {self.timeout_seconds} seconds")
        except Exception as e:
            logger.error(f"MCP tool {tool_name} failed: {e}")
            raise

        return self._parse_result(tool_name, result)

    @staticmethod
    def _parse_result(tool_name: str, result: Any) -> Any:
        """提取结果内容：优先结构化 data，其次第一段文本按 JSON 解析"""
        if getattr(result, "is_error", False):
            raise MCPToolError(tool_name, str(result))

        data = getattr(result, "data", None)
        if data is not None:
            return data

        content = getattr(result, "content", None)
        if content:
            text = getattr(content[0], "text", None)
            if text is None:
                return None
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text
        return None
