"""
存储层

当前只提供内存会话存储
"""

from .session_store import SessionStore, MemorySessionStore

__all__ = [
    "SessionStore",
    "MemorySessionStore"
]
