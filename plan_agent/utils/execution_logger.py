"""
执行日志记录器 - 记录执行会话的完整时间线
"""
import json
import logging
import os
import threading
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExecutionLogger:
    """会话时间线日志记录器（线程安全单例）"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, "initialized"):
            self.log_file: Optional[str] = None
            self._write_lock = threading.Lock()
            self.initialized = True

    def set_log_file(self, log_file: Optional[str]):
        """设置日志文件路径，传入 None 关闭文件输出"""
        self.log_file = log_file
        if not log_file:
            return
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(log_file, "w", encoding="utf-8") as f:
            f.write(f"=== Session Timeline Started at {datetime.now().isoformat()} ===\n\n")

    def log(self, event_type: str, details: Dict[str, Any]):
        """记录日志条目"""
        if not self.log_file:
            return

        timestamp = datetime.now().isoformat()
        try:
            with self._write_lock, open(self.log_file, "a", encoding="utf-8") as f:
                f.write(f"[{timestamp}] {event_type}\n")
                for key, value in details.items():
                    if isinstance(value, (dict, list)):
                        f.write(f"  {key}: {json.dumps(value, ensure_ascii=False, default=str)}\n")
                    else:
                        f.write(f"  {key}: {value}\n")
                f.write("\n")
        except OSError as e:
            logger.error(f"Failed to write execution log: {e}")

    def session_created(self, session_id: str, admin_user_id: str, team_id: Optional[str]):
        """记录会话创建"""
        self.log("SESSION_CREATED", {
            "session_id": session_id,
            "admin_user_id": admin_user_id,
            "team_id": team_id or "-"
        })

    def session_status_change(self, session_id: str, old_status: str, new_status: str,
                              triggered_by: Optional[str] = None, reason: Optional[str] = None):
        """记录会话状态变化"""
        log_data = {
            "session_id": session_id,
            "old_status": old_status,
            "new_status": new_status,
            "triggered_by": triggered_by or "system"
        }
        if reason:
            log_data["reason"] = reason
        self.log("SESSION_STATUS_CHANGE", log_data)

    def delivery_result(self, session_id: str, recipient: str, outcome: str,
                        delivery_id: Optional[str] = None, error: Optional[str] = None):
        """记录单个收件人的投递结果: delivered / skipped / failed"""
        log_data = {
            "session_id": session_id,
            "recipient": recipient,
            "outcome": outcome
        }
        if delivery_id:
            log_data["delivery_id"] = delivery_id
        if error:
            log_data["error"] = error
        self.log("DELIVERY_RESULT", log_data)

    def schedule_armed(self, cron_expression: str, next_run: datetime):
        """记录计时器挂载"""
        self.log("SCHEDULE_ARMED", {
            "cron_expression": cron_expression,
            "next_run": next_run.isoformat()
        })

    def schedule_fired(self, cron_expression: str, session_id: Optional[str]):
        """记录计时器触发"""
        self.log("SCHEDULE_FIRED", {
            "cron_expression": cron_expression,
            "session_id": session_id or "-"
        })


# 全局单例
execution_logger = ExecutionLogger()
