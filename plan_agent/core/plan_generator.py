"""
计划生成模块

从工单源读取每个人的工单，分组、截断并生成叙述摘要，同时汇总团队完成率
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ConfigValidationError, TeamNotFoundError
from ..infrastructure.ticket_gateway import TicketSourceGateway
from ..models.plan import ExecutionPlan, TeamSummary
from ..models.ticket import Person, Ticket, TicketState
from ..utils.config import Config
from .constants import SystemConstants
from .id_generator import id_generator

logger = logging.getLogger(__name__)

FINISHED = "finished"
IN_PROGRESS = "in_progress"
OPEN = "open"

# 截断时保留的先后顺序
BUCKET_ORDER = (FINISHED, IN_PROGRESS, OPEN)

_STATE_BUCKETS = {
    TicketState.COMPLETED: FINISHED,
    TicketState.STARTED: IN_PROGRESS,
    TicketState.UNSTARTED: OPEN,
    TicketState.BACKLOG: OPEN,
}


@dataclass(frozen=True)
class PlanGeneratorConfig:
    """计划生成配置（不可变快照）"""
    team_id: Optional[str] = None
    include_completed_tickets: bool = False
    include_canceled_tickets: bool = False
    max_tickets_per_user: int = SystemConstants.DEFAULT_MAX_TICKETS_PER_USER

    @classmethod
    def from_config(cls, config: Config) -> "PlanGeneratorConfig":
        return cls(
            team_id=config.get_string("linear.team_id") or None,
            include_completed_tickets=config.get_bool("plan_generator.include_completed_tickets", False),
            include_canceled_tickets=config.get_bool("plan_generator.include_canceled_tickets", False),
            max_tickets_per_user=config.get_int(
                "plan_generator.max_tickets_per_user", SystemConstants.DEFAULT_MAX_TICKETS_PER_USER
            ),
        )

    def validate(self) -> "ConfigValidationResult":
        errors: List[str] = []
        if self.max_tickets_per_user <= 0:
            errors.append("maxTicketsPerUser must be greater than 0")
        if self.max_tickets_per_user > SystemConstants.MAX_TICKETS_PER_USER_LIMIT:
            errors.append("maxTicketsPerUser should not exceed 1000 for performance reasons")
        return ConfigValidationResult(is_valid=not errors, errors=errors)


@dataclass(frozen=True)
class ConfigValidationResult:
    """配置校验结果"""
    is_valid: bool
    errors: List[str]


def classify_ticket(ticket: Ticket, include_canceled: bool = False) -> Optional[str]:
    """根据生命周期状态返回分组名

    canceled 默认排除；显式包含时归入 finished（已关闭的工作）
    """
    if ticket.state == TicketState.CANCELED:
        return FINISHED if include_canceled else None
    return _STATE_BUCKETS[ticket.state]


def build_plan_summary(finished: int, in_progress: int, open_count: int) -> str:
    """生成叙述摘要，按优先级取第一个命中的规则"""
    if in_progress >= SystemConstants.MANY_IN_PROGRESS_THRESHOLD:
        return (
            f"You have many tickets in progress ({in_progress}) - "
            "consider focusing on completing some before starting new ones."
        )
    if open_count >= SystemConstants.MANY_OPEN_THRESHOLD:
        return (
            f"You have many open tickets ({open_count}) - "
            "consider prioritizing and organizing your backlog."
        )
    total = finished + in_progress + open_count
    return (
        f"You have {total} total tickets: {finished} completed, "
        f"{in_progress} in progress, {open_count} open"
    )


class PlanGenerator:
    """计划生成引擎

    不做重试，网关异常原样抛给调用方
    """

    def __init__(self, ticket_gateway: TicketSourceGateway, config: Optional[PlanGeneratorConfig] = None):
        self.ticket_gateway = ticket_gateway
        self._config = config or PlanGeneratorConfig()

    async def generate_individual_plans(self, team_scope: Optional[str] = None) -> List[ExecutionPlan]:
        """为范围内所有人生成计划，顺序与工单源返回的人员顺序一致"""
        target_team = team_scope or self._config.team_id
        people = await self.ticket_gateway.list_people(target_team)
        logger.info(f"Generating plans for {len(people)} people (team={target_team or '-'})")

        plans: List[ExecutionPlan] = []
        for person in people:
            plan = await self.generate_user_plan(person, target_team)
            if plan is not None:
                plans.append(plan)

        logger.info(f"Generated {len(plans)} plans")
        return plans

    async def generate_user_plan(self, person: Person, team_scope: Optional[str] = None) -> Optional[ExecutionPlan]:
        """生成单人计划，过滤并截断后没有工单时返回 None"""
        config = self._config
        tickets = await self.ticket_gateway.query_by_assignee(person.id)
        filtered = self._filter_tickets(tickets, team_scope)
        buckets = self._truncate(self._categorize(filtered), config.max_tickets_per_user)

        if not any(buckets.values()):
            logger.debug(f"No tickets for {person.display_name}, skipping plan")
            return None

        return ExecutionPlan(
            plan_id=id_generator.generate_plan_id(person.id),
            user_id=person.id,
            user_name=person.display_name,
            finished=buckets[FINISHED],
            in_progress=buckets[IN_PROGRESS],
            open=buckets[OPEN],
            summary=build_plan_summary(
                len(buckets[FINISHED]), len(buckets[IN_PROGRESS]), len(buckets[OPEN])
            ),
            generated_at=datetime.now(),
        )

    async def generate_team_summary(self, team_scope: str) -> TeamSummary:
        """生成团队汇总

        完成率基于团队原始（未截断）计数；plans 复用 generate_individual_plans
        """
        team = await self.ticket_gateway.get_team(team_scope)
        if team is None:
            raise TeamNotFoundError(team_scope)

        completed, in_progress, open_count = self._count_states(
            await self.ticket_gateway.query_by_team(team_scope)
        )
        total = completed + in_progress + open_count
        plans = await self.generate_individual_plans(team_scope)

        return TeamSummary(
            team_id=team.id,
            team_name=team.name,
            total_tickets=total,
            completed_tickets=completed,
            in_progress_tickets=in_progress,
            open_tickets=open_count,
            completion_rate=TeamSummary.calculate_completion_rate(completed, total),
            plans=plans,
            generated_at=datetime.now(),
        )

    def update_config(self, **changes: Any):
        """合并配置；合并结果不合法时抛出 ConfigValidationError 且不修改当前配置"""
        unknown = set(changes) - {f.name for f in dataclasses.fields(PlanGeneratorConfig)}
        if unknown:
            raise ConfigValidationError([f"Unknown config field: {name}" for name in sorted(unknown)])

        candidate = dataclasses.replace(self._config, **changes)
        result = candidate.validate()
        if not result.is_valid:
            raise ConfigValidationError(result.errors)
        self._config = candidate
        logger.info(f"Plan generator config updated: {changes}")

    def get_config(self) -> PlanGeneratorConfig:
        return self._config

    def validate_config(self) -> ConfigValidationResult:
        return self._config.validate()

    def _filter_tickets(self, tickets: List[Ticket], team_scope: Optional[str]) -> List[Ticket]:
        config = self._config
        result = []
        for ticket in tickets:
            if ticket.state == TicketState.COMPLETED and not config.include_completed_tickets:
                continue
            if ticket.state == TicketState.CANCELED and not config.include_canceled_tickets:
                continue
            if team_scope and ticket.team_id != team_scope:
                continue
            result.append(ticket)
        return result

    def _categorize(self, tickets: List[Ticket]) -> Dict[str, List[Ticket]]:
        buckets: Dict[str, List[Ticket]] = {name: [] for name in BUCKET_ORDER}
        for ticket in tickets:
            bucket = classify_ticket(ticket, self._config.include_canceled_tickets)
            if bucket is not None:
                buckets[bucket].append(ticket)
        return buckets

    @staticmethod
    def _truncate(buckets: Dict[str, List[Ticket]], cap: int) -> Dict[str, List[Ticket]]:
        """按 finished -> in_progress -> open 依次填充至上限，组内按优先级降序（稳定排序）"""
        remaining = max(cap, 0)
        result: Dict[str, List[Ticket]] = {}
        for name in BUCKET_ORDER:
            ordered = sorted(buckets[name], key=lambda t: t.priority, reverse=True)
            result[name] = ordered[:remaining]
            remaining -= len(result[name])
        return result

    def _count_states(self, tickets: List[Ticket]) -> Tuple[int, int, int]:
        """原始计数：completed 总是计入，canceled 仅在配置包含时计为 completed"""
        counts = {name: 0 for name in BUCKET_ORDER}
        for ticket in tickets:
            bucket = classify_ticket(ticket, self._config.include_canceled_tickets)
            if bucket is not None:
                counts[bucket] += 1
        return counts[FINISHED], counts[IN_PROGRESS], counts[OPEN]
