"""
API接口模块

提供RESTful API接口
"""

from .session_api import router as session_router, get_scheduler

__all__ = [
    "session_router",
    "get_scheduler"
]
