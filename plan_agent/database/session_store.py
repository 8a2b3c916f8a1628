"""
会话存储

默认实现为内存存储，进程退出即丢失。
需要持久化时实现 SessionStore 接口替换即可
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from ..models.execution import ExecutionSession

logger = logging.getLogger(__name__)


class SessionStore:
    """会话存储接口"""

    def get(self, session_id: str) -> Optional[ExecutionSession]:
        raise NotImplementedError

    def put(self, session: ExecutionSession) -> None:
        raise NotImplementedError

    def values(self) -> List[ExecutionSession]:
        raise NotImplementedError

    def delete(self, session_id: str) -> bool:
        raise NotImplementedError

    def remove_where(self, predicate: Callable[[ExecutionSession], bool]) -> int:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.values())


class MemorySessionStore(SessionStore):
    """内存版本的会话存储

    按插入顺序保存；所有读写都在同一把可重入锁下进行
    """

    def __init__(self):
        self._sessions: Dict[str, ExecutionSession] = {}
        self._lock = threading.RLock()

    def get(self, session_id: str) -> Optional[ExecutionSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def put(self, session: ExecutionSession) -> None:
        try:
            with self._lock:
                self._sessions[session.id] = session
            logger.debug(f"Memory: Stored session {session.id}")
        except Exception as e:
            logger.error(f"Memory: Failed to store session {session.id}: {e}")
            raise

    def values(self) -> List[ExecutionSession]:
        """返回快照列表，调用方遍历期间不受并发修改影响"""
        with self._lock:
            return list(self._sessions.values())

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info(f"Memory: Deleted session {session_id}")
        return removed is not None

    def remove_where(self, predicate: Callable[[ExecutionSession], bool]) -> int:
        """删除满足条件的会话，返回删除数量"""
        with self._lock:
            doomed = [sid for sid, session in self._sessions.items() if predicate(session)]
            for session_id in doomed:
                del self._sessions[session_id]
        if doomed:
            logger.info(f"Memory: Removed {len(doomed)} sessions")
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
