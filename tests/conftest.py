"""
pytest 配置文件
提供共享的测试 fixtures
"""
from datetime import datetime, timedelta, tzinfo
from typing import Optional

import pytest

from plan_agent.core.plan_generator import PlanGenerator, PlanGeneratorConfig
from plan_agent.core.scheduler import PlanScheduler, SchedulerSettings
from plan_agent.infrastructure.messaging_gateway import DestinationDirectory
from plan_agent.models.ticket import TicketState
from plan_agent.utils.execution_logger import execution_logger
from tests.utils.mock_gateways import InMemoryTicketGateway, RecordingMessagingGateway, make_ticket


class FixedClock:
    """可调的测试时钟，签名与 datetime.now 一致"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self, tz: Optional[tzinfo] = None) -> datetime:
        if tz is None:
            return self.now
        return self.now.replace(tzinfo=tz)

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def session_timeline_log(tmp_path):
    """每个测试把会话时间线写到临时文件"""
    log_file = tmp_path / "session_timeline.log"
    execution_logger.set_log_file(str(log_file))
    yield log_file
    execution_logger.set_log_file(None)


@pytest.fixture
def ticket_gateway():
    """两人一团队的内存工单源"""
    gateway = InMemoryTicketGateway()
    gateway.add_team("team-1", "Platform")
    gateway.add_person(
        "user-1", "Alice",
        make_ticket("1", TicketState.STARTED, priority=2, assignee_id="user-1"),
        make_ticket("2", TicketState.UNSTARTED, priority=1, assignee_id="user-1"),
        make_ticket("3", TicketState.COMPLETED, priority=3, assignee_id="user-1"),
    )
    gateway.add_person(
        "user-2", "Bob",
        make_ticket("4", TicketState.BACKLOG, priority=0, assignee_id="user-2"),
        make_ticket("5", TicketState.STARTED, priority=4, assignee_id="user-2"),
    )
    return gateway


@pytest.fixture
def directory():
    return DestinationDirectory(
        person_destinations={"user-1": "U_ALICE", "user-2": "U_BOB"},
        team_channels={"team-1": "C_PLATFORM"},
    )


@pytest.fixture
def messaging_gateway(directory):
    return RecordingMessagingGateway(directory)


@pytest.fixture
def plan_generator(ticket_gateway):
    return PlanGenerator(ticket_gateway, PlanGeneratorConfig())


@pytest.fixture
def clock():
    # 2024-01-02 是周二
    return FixedClock(datetime(2024, 1, 2, 10, 0))


@pytest.fixture
def scheduler(plan_generator, messaging_gateway, clock):
    settings = SchedulerSettings(admin_user_ids=["admin-1"])
    return PlanScheduler(plan_generator, messaging_gateway, settings=settings, clock=clock)
