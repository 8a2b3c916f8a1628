"""
会话存储测试
"""

import threading
from datetime import datetime, timedelta

from plan_agent.database.session_store import MemorySessionStore
from plan_agent.models.execution import ExecutionSession, SessionStatus


def build_session(session_id: str, generated_at: datetime = datetime(2024, 1, 2, 10, 0)) -> ExecutionSession:
    return ExecutionSession(id=session_id, generated_at=generated_at, admin_user_id="admin-1")


class TestMemorySessionStore:
    """内存会话存储测试"""

    def test_put_and_get(self):
        store = MemorySessionStore()
        session = build_session("s1")

        store.put(session)

        assert store.get("s1") is session
        assert store.get("missing") is None
        assert len(store) == 1

    def test_values_keep_insertion_order(self):
        store = MemorySessionStore()
        for session_id in ("s3", "s1", "s2"):
            store.put(build_session(session_id))

        assert [s.id for s in store.values()] == ["s3", "s1", "s2"]

    def test_values_is_a_snapshot(self):
        store = MemorySessionStore()
        store.put(build_session("s1"))

        snapshot = store.values()
        store.put(build_session("s2"))

        assert [s.id for s in snapshot] == ["s1"]

    def test_delete(self):
        store = MemorySessionStore()
        store.put(build_session("s1"))

        assert store.delete("s1") is True
        assert store.delete("s1") is False

    def test_remove_where(self):
        store = MemorySessionStore()
        base = datetime(2024, 1, 2, 10, 0)
        store.put(build_session("old", base - timedelta(days=2)))
        store.put(build_session("new", base))

        removed = store.remove_where(lambda s: s.generated_at < base - timedelta(days=1))

        assert removed == 1
        assert [s.id for s in store.values()] == ["new"]

    def test_concurrent_writers(self):
        """多线程写入不丢失会话"""
        store = MemorySessionStore()

        def writer(prefix):
            for index in range(200):
                store.put(build_session(f"{prefix}-{index}"))

        threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 800
        assert all(s.status == SessionStatus.PENDING for s in store.values())
