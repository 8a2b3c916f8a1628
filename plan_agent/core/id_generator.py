"""
ID生成器 - 生成计划与会话ID
"""

import re
import time
import uuid
from typing import Dict, Optional

from .constants import SystemConstants


class IDGenerator:
    """ID生成器"""

    def _timestamp(self) -> int:
        return int(time.time() * 1000)

    def _suffix(self) -> str:
        return uuid.uuid4().hex[:6]

    def generate_plan_id(self, user_id: str) -> str:
        """生成计划ID"""
        clean_user = re.sub(r"[^a-zA-Z0-9_-]", "_", user_id)
        return SystemConstants.PLAN_ID_PATTERN.format(
            user_id=clean_user,
            timestamp=self._timestamp(),
            suffix=self._suffix()
        )

    def generate_session_id(self) -> str:
        """生成会话ID"""
        return SystemConstants.SESSION_ID_PATTERN.format(
            timestamp=self._timestamp(),
            suffix=self._suffix()
        )

    def parse_session_id(self, session_id: str) -> Optional[Dict[str, str]]:
        """解析会话ID，提取毫秒时间戳与随机后缀"""
        match = re.match(r"^session_(\d+)_([0-9a-f]{6})$", session_id)
        if match:
            timestamp, suffix = match.groups()
            return {"timestamp": timestamp, "suffix": suffix}
        return None


# 全局ID生成器实例
id_generator = IDGenerator()
