"""
调度与会话核心

负责：
1. 触发一次执行（生成计划 -> 投递 -> 写回），并维护会话状态机
2. 会话查询、状态更新、清理与统计
3. 单次计时器：按调度表达式在下一次运行时间触发一次执行

状态机：pending -> confirmed | failed，confirmed -> completed 只能由外部确认。
任何情况下都不会自动重试
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Callable, List, Optional, Set, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..database.session_store import MemorySessionStore, SessionStore
from ..exceptions import ScheduleValidationError
from ..infrastructure.messaging_gateway import MessagingGateway
from ..models.execution import (
    ExecutionSession,
    ExecutionStats,
    ScheduleConfig,
    ScheduleInfo,
    SessionStatus,
)
from ..utils.config import Config
from ..utils.execution_logger import execution_logger
from .constants import SystemConstants
from .id_generator import id_generator
from .plan_generator import PlanGenerator
from .schedule_evaluator import NextRunEvaluator, SimpleCronEvaluator, split_expression

logger = logging.getLogger(__name__)

Clock = Callable[[Optional[tzinfo]], datetime]


@dataclass(frozen=True)
class SchedulerSettings:
    """调度核心的显式配置"""
    admin_user_ids: List[str] = field(default_factory=list)
    default_cron: str = SystemConstants.DEFAULT_CRON_EXPRESSION
    timezone: str = SystemConstants.DEFAULT_TIMEZONE
    max_retries: int = SystemConstants.DEFAULT_MAX_RETRIES
    session_max_age_hours: int = SystemConstants.DEFAULT_SESSION_MAX_AGE_HOURS

    @classmethod
    def from_config(cls, config: Config) -> "SchedulerSettings":
        return cls(
            admin_user_ids=config.get_list("scheduler.admin_user_ids"),
            default_cron=config.get_string("scheduler.cron_expression", SystemConstants.DEFAULT_CRON_EXPRESSION),
            timezone=config.get_string("scheduler.timezone", SystemConstants.DEFAULT_TIMEZONE),
            max_retries=config.get_int("scheduler.max_retries", SystemConstants.DEFAULT_MAX_RETRIES),
            session_max_age_hours=config.get_int(
                "scheduler.session_max_age_hours", SystemConstants.DEFAULT_SESSION_MAX_AGE_HOURS
            ),
        )

    @property
    def default_admin(self) -> Optional[str]:
        return self.admin_user_ids[0] if self.admin_user_ids else None

    def default_schedule(self, admin_user_id: Optional[str] = None, team_id: Optional[str] = None) -> ScheduleConfig:
        """用默认表达式与时区构造调度配置"""
        return ScheduleConfig(
            cron_expression=self.default_cron,
            timezone=self.timezone,
            admin_user_id=admin_user_id or self.default_admin or "",
            team_id=team_id,
        )


class PlanScheduler:
    """调度与会话核心"""

    def __init__(
        self,
        plan_generator: PlanGenerator,
        messaging_gateway: MessagingGateway,
        settings: Optional[SchedulerSettings] = None,
        storage_service=None,
        session_store: Optional[SessionStore] = None,
        evaluator: Optional[NextRunEvaluator] = None,
        clock: Optional[Clock] = None,
    ):
        self.plan_generator = plan_generator
        self.messaging_gateway = messaging_gateway
        self.settings = settings or SchedulerSettings()
        self.storage_service = storage_service
        self.session_store = session_store or MemorySessionStore()
        self.evaluator = evaluator or SimpleCronEvaluator()
        self._clock: Clock = clock or datetime.now

        self._timer: Optional[asyncio.TimerHandle] = None
        self._schedule_info: Optional[ScheduleInfo] = None
        self._fired_tasks: Set[asyncio.Task] = set()

    def _now(self, tz: Optional[tzinfo] = None) -> datetime:
        return self._clock(tz)

    # ------------------------------------------------------------------
    # 执行
    # ------------------------------------------------------------------

    async def trigger_execution(self, admin_user_id: str, team_id: Optional[str] = None) -> ExecutionSession:
        """触发一次执行，返回终态会话（confirmed 或 failed），从不抛出业务异常"""
        return await self._execute(admin_user_id, team_id)

    async def _execute(
        self,
        admin_user_id: str,
        team_id: Optional[str],
        summary_destination: Optional[str] = None,
    ) -> ExecutionSession:
        session = ExecutionSession(
            id=id_generator.generate_session_id(),
            generated_at=self._now(),
            admin_user_id=admin_user_id,
            team_id=team_id,
        )
        # 先登记再生成，执行中的会话可被并发读取
        self.session_store.put(session)
        execution_logger.session_created(session.id, admin_user_id, team_id)
        logger.info(f"Created execution session {session.id} (admin={admin_user_id}, team={team_id or '-'})")

        return await self._run_pass(session, summary_destination)

    async def _run_pass(
        self,
        session: ExecutionSession,
        summary_destination: Optional[str] = None,
    ) -> ExecutionSession:
        try:
            if session.team_id:
                summary = await self.plan_generator.generate_team_summary(session.team_id)
                session.team_summary = summary
                session.plans = list(summary.plans)
            else:
                session.plans = await self.plan_generator.generate_individual_plans()

            await self._deliver(session, summary_destination)

            if self.storage_service is not None and session.plans:
                session.storage_results = await self.storage_service.store_execution_plans(session.plans)
                failed = [r for r in session.storage_results if not r.success]
                if failed:
                    logger.warning(f"Session {session.id}: write-back reported errors for {len(failed)} plans")

            self._transition(session, SessionStatus.CONFIRMED)
            logger.info(
                f"Session {session.id} confirmed: {len(session.plans)} plans, "
                f"{len(session.delivery_ids)} deliveries"
            )
        except Exception as e:
            logger.error(f"Execution pass {session.id} failed: {e}")
            session.error_message = str(e)
            self._transition(session, SessionStatus.FAILED, reason=str(e))
        finally:
            session.completed_at = self._now()

        return session

    async def _deliver(self, session: ExecutionSession, summary_destination: Optional[str] = None):
        """投递扇出：每个收件人独立处理失败，连接总会释放"""
        async with self.messaging_gateway.connection() as gateway:
            for plan in session.plans:
                destination = await gateway.resolve_destination_for_person(plan.user_id)
                if not destination:
                    logger.warning(f"No destination mapped for {plan.user_name} ({plan.user_id}), skipping delivery")
                    execution_logger.delivery_result(session.id, plan.user_id, "skipped")
                    continue
                try:
                    delivery_id = await gateway.send_plan_message(plan, destination)
                    session.delivery_ids.append(delivery_id)
                    execution_logger.delivery_result(session.id, plan.user_id, "delivered", delivery_id=delivery_id)
                except Exception as e:
                    logger.error(f"Failed to deliver plan {plan.plan_id} to {plan.user_name}: {e}")
                    execution_logger.delivery_result(session.id, plan.user_id, "failed", error=str(e))

            summary = session.team_summary
            if summary is None:
                return

            destination = summary_destination or await gateway.resolve_summary_destination(summary.team_id)
            recipient = f"team:{summary.team_id}"
            if not destination:
                logger.warning(f"No summary destination for team {summary.team_name}, skipping delivery")
                execution_logger.delivery_result(session.id, recipient, "skipped")
                return
            try:
                delivery_id = await gateway.send_summary_message(summary, destination)
                session.delivery_ids.append(delivery_id)
                execution_logger.delivery_result(session.id, recipient, "delivered", delivery_id=delivery_id)
            except Exception as e:
                logger.error(f"Failed to deliver team summary for {summary.team_name}: {e}")
                execution_logger.delivery_result(session.id, recipient, "failed", error=str(e))

    def _transition(
        self,
        session: ExecutionSession,
        status: SessionStatus,
        triggered_by: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        old_status = session.status
        session.status = status
        execution_logger.session_status_change(
            session.id, old_status.value, status.value, triggered_by=triggered_by, reason=reason
        )

    # ------------------------------------------------------------------
    # 会话查询与维护
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> Optional[ExecutionSession]:
        return self.session_store.get(session_id)

    def get_active_sessions(self) -> List[ExecutionSession]:
        """所有登记中的会话，按创建顺序"""
        return self.session_store.values()

    def update_session_status(
        self,
        session_id: str,
        status: Union[SessionStatus, str],
        error_message: Optional[str] = None,
    ) -> bool:
        """外部状态更新

        先校验状态值（非法值抛出 InvalidSessionStatusError），会话不存在时不做任何事
        """
        new_status = SessionStatus.parse(status)
        session = self.session_store.get(session_id)
        if session is None:
            logger.warning(f"Session {session_id} not found, status update ignored")
            return False

        self._transition(session, new_status, triggered_by="external", reason=error_message)
        if error_message is not None:
            session.error_message = error_message
        logger.info(f"Session {session_id} status updated to {new_status.value}")
        return True

    def cleanup_old_sessions(self, max_age_hours: Optional[float] = None):
        """删除 generated_at 不晚于 now - max_age 的会话"""
        if max_age_hours is None:
            max_age_hours = self.settings.session_max_age_hours
        cutoff = self._now() - timedelta(hours=max_age_hours)
        removed = self.session_store.remove_where(lambda s: s.generated_at <= cutoff)
        logger.info(f"Cleaned up {removed} sessions older than {max_age_hours}h")

    def get_execution_stats(self) -> ExecutionStats:
        sessions = self.session_store.values()
        stats = ExecutionStats(total_sessions=len(sessions))
        for session in sessions:
            if session.status == SessionStatus.PENDING:
                stats.pending_sessions += 1
            elif session.status == SessionStatus.CONFIRMED:
                stats.confirmed_sessions += 1
            elif session.status == SessionStatus.COMPLETED:
                stats.completed_sessions += 1
            elif session.status == SessionStatus.FAILED:
                stats.failed_sessions += 1
            if session.retry_count > 0:
                stats.retried_sessions += 1

        if stats.total_sessions:
            succeeded = stats.confirmed_sessions + stats.completed_sessions
            stats.success_rate = round(succeeded / stats.total_sessions * 100, 2)
        return stats

    async def retry_failed_session(self, session_id: str) -> Optional[ExecutionSession]:
        """显式重跑一个失败会话

        会话不存在、不是 failed 或重试次数已用完时返回 None
        """
        session = self.session_store.get(session_id)
        if session is None:
            logger.warning(f"Session {session_id} not found, cannot retry")
            return None
        if not session.is_failed():
            logger.warning(f"Session {session_id} is {session.status.value}, only failed sessions can be retried")
            return None
        if session.retry_count >= self.settings.max_retries:
            logger.warning(f"Session {session_id} exhausted {self.settings.max_retries} retries")
            return None

        session.retry_count += 1
        session.last_retry_at = self._now()
        session.error_message = None
        session.delivery_ids = []
        session.plans = []
        session.team_summary = None
        session.storage_results = []
        session.completed_at = None
        self._transition(session, SessionStatus.PENDING, triggered_by="retry", reason=f"attempt {session.retry_count}")
        logger.info(f"Retrying session {session_id} (attempt {session.retry_count}/{self.settings.max_retries})")

        return await self._run_pass(session)

    # ------------------------------------------------------------------
    # 计时器
    # ------------------------------------------------------------------

    async def schedule_execution(self, config: ScheduleConfig) -> Optional[datetime]:
        """挂载单次计时器，返回下一次运行时间；disabled 时只取消已有计时器并返回 None"""
        self.cancel_scheduled_execution()
        if not config.enabled:
            logger.info("Schedule disabled, no timer armed")
            return None

        try:
            tz = ZoneInfo(config.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ScheduleValidationError(f"Invalid timezone: {config.timezone!r}") from e

        fields = split_expression(config.cron_expression)
        if len(fields) != 5:
            raise ScheduleValidationError(
                f"Invalid cron expression: {config.cron_expression!r}. Expected 5 fields, got {len(fields)}"
            )

        now = self._now(tz)
        next_run = self.evaluator.next_run_from(config.cron_expression, now)
        if next_run is None:
            raise ScheduleValidationError(f"Invalid cron expression: {config.cron_expression!r}")

        delay = max((next_run - now).total_seconds(), 0.0)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer_fired, config)
        self._schedule_info = ScheduleInfo(config=config, created_at=now, next_execution=next_run)

        execution_logger.schedule_armed(config.cron_expression, next_run)
        logger.info(f"Scheduled execution at {next_run.isoformat()} ({config.cron_expression}, {config.timezone})")
        return next_run

    def cancel_scheduled_execution(self):
        """取消已挂载的计时器，可重复调用"""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("Scheduled execution cancelled")
        if self._schedule_info is not None:
            self._schedule_info.is_active = False

    def get_schedule_info(self) -> Optional[ScheduleInfo]:
        return self._schedule_info

    def _on_timer_fired(self, config: ScheduleConfig):
        self._timer = None
        task = asyncio.create_task(self._run_scheduled(config))
        self._fired_tasks.add(task)
        task.add_done_callback(self._fired_tasks.discard)

    async def _run_scheduled(self, config: ScheduleConfig):
        logger.info(f"Scheduled execution fired ({config.cron_expression})")
        if self._schedule_info is not None:
            self._schedule_info.last_execution = self._now()
            self._schedule_info.is_active = False

        session = await self._execute(
            config.admin_user_id,
            config.team_id,
            summary_destination=config.summary_channel_id,
        )
        execution_logger.schedule_fired(config.cron_expression, session.id)
        return session

    async def shutdown(self):
        """取消计时器并等待已触发的执行结束"""
        self.cancel_scheduled_execution()
        if self._fired_tasks:
            logger.info(f"Waiting for {len(self._fired_tasks)} in-flight executions")
            await asyncio.gather(*list(self._fired_tasks), return_exceptions=True)
        logger.info("Plan scheduler shut down")
