"""
写回同步层

把生成的计划写回工单源：评论 + 自定义字段。
每个子操作、每张工单独立处理失败，所有错误累积到 StorageResult.errors，不向上抛出
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.constants import SystemConstants
from ..infrastructure.ticket_gateway import TicketSourceGateway
from ..models.plan import ExecutionPlan, ExecutionPlanMetadata
from ..models.storage import StorageResult
from ..utils.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomFieldIds:
    """写回使用的两个自定义字段ID"""
    execution_plan_id: str = SystemConstants.DEFAULT_PLAN_ID_FIELD
    last_plan_date: str = SystemConstants.DEFAULT_LAST_PLAN_DATE_FIELD

    def field_spec(self) -> Dict[str, Dict[str, Any]]:
        return {
            self.execution_plan_id: {"name": "Execution Plan ID", "type": "text"},
            self.last_plan_date: {"name": "Last Plan Date", "type": "date"},
        }


@dataclass(frozen=True)
class StorageConfig:
    """写回配置"""
    team_id: Optional[str] = None
    custom_field_ids: CustomFieldIds = field(default_factory=CustomFieldIds)
    enable_comments: bool = True
    enable_custom_fields: bool = True

    @classmethod
    def from_config(cls, config: Config) -> "StorageConfig":
        return cls(
            team_id=config.get_string("linear.team_id") or None,
            custom_field_ids=CustomFieldIds(
                execution_plan_id=config.get_string(
                    "linear.custom_field_ids.execution_plan_id", SystemConstants.DEFAULT_PLAN_ID_FIELD
                ),
                last_plan_date=config.get_string(
                    "linear.custom_field_ids.last_plan_date", SystemConstants.DEFAULT_LAST_PLAN_DATE_FIELD
                ),
            ),
            enable_comments=config.get_bool("linear.enable_comments", True),
            enable_custom_fields=config.get_bool("linear.enable_custom_fields", True),
        )


def format_plan_comment(plan: ExecutionPlan) -> str:
    """写到工单上的评论文本"""
    generated = plan.generated_at.strftime("%Y-%m-%d %H:%M")
    sections = [
        f"📋 **Execution Plan - {generated}**",
        "",
        f"**Summary**: {plan.summary}",
    ]
    for title, marker, tickets in (
        ("Completed Tickets", "✅", plan.finished),
        ("In Progress", "🔄", plan.in_progress),
        ("Open Tickets", "📝", plan.open),
    ):
        sections.append("")
        sections.append(f"**{title}** ({len(tickets)}):")
        sections.extend(f"{marker} {t.identifier}: {t.title}" for t in tickets)
    sections.extend(["", "---", f"*Plan ID: {plan.plan_id}*"])
    return "\n".join(sections)


class LinearStorageService:
    """执行计划写回服务"""

    def __init__(self, ticket_gateway: TicketSourceGateway, config: Optional[StorageConfig] = None):
        self.ticket_gateway = ticket_gateway
        self.config = config or StorageConfig()

    async def store_execution_plan(self, plan: ExecutionPlan) -> StorageResult:
        """写回单个计划，返回逐项统计与错误列表"""
        result = StorageResult(plan_id=plan.plan_id)
        tickets = plan.all_tickets()
        field_ids = self.config.custom_field_ids
        logger.info(f"Storing execution plan {plan.plan_id} for {plan.user_name} ({len(tickets)} tickets)")

        if self.config.enable_custom_fields:
            try:
                await self.ticket_gateway.ensure_field_schema(self.config.team_id, field_ids.field_spec())
            except Exception as e:
                message = f"Failed to ensure custom field definitions: {e}"
                logger.error(message)
                result.errors.append(message)

        if self.config.enable_comments:
            comment = format_plan_comment(plan)
            for ticket in tickets:
                try:
                    await self.ticket_gateway.append_comment(ticket.id, comment)
                    result.comments_added += 1
                except Exception as e:
                    message = f"Failed to add comment to {ticket.identifier}: {e}"
                    logger.error(message)
                    result.errors.append(message)

        if self.config.enable_custom_fields:
            values = {
                field_ids.execution_plan_id: plan.plan_id,
                field_ids.last_plan_date: plan.generated_at.date().isoformat(),
            }
            for ticket in tickets:
                try:
                    await self.ticket_gateway.write_custom_fields(ticket.id, values)
                    result.custom_fields_updated += 1
                except Exception as e:
                    message = f"Failed to update custom fields on {ticket.identifier}: {e}"
                    logger.error(message)
                    result.errors.append(message)

        # 自定义字段属于元数据层面，不计入工单更新数
        result.tickets_updated = result.comments_added
        result.success = not result.errors

        logger.info(
            f"Stored plan {plan.plan_id}: success={result.success}, comments={result.comments_added}, "
            f"custom_fields={result.custom_fields_updated}, errors={len(result.errors)}"
        )
        return result

    async def store_execution_plans(self, plans: List[ExecutionPlan]) -> List[StorageResult]:
        """批量写回，结果顺序与输入一致"""
        results: List[StorageResult] = []
        for plan in plans:
            try:
                results.append(await self.store_execution_plan(plan))
            except Exception as e:
                logger.error(f"Failed to store execution plan {plan.plan_id}: {e}")
                results.append(StorageResult.failed(plan.plan_id, str(e)))

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"Batch storage completed: {succeeded}/{len(results)} plans stored")
        return results

    async def get_execution_plan_metadata(self, ticket_id: str) -> Optional[ExecutionPlanMetadata]:
        """读取工单上的计划元数据，任一字段缺失时返回 None"""
        field_ids = self.config.custom_field_ids
        try:
            values = await self.ticket_gateway.read_custom_fields(
                ticket_id, [field_ids.execution_plan_id, field_ids.last_plan_date]
            )
        except Exception as e:
            logger.error(f"Failed to read execution plan metadata for {ticket_id}: {e}")
            raise

        plan_id = values.get(field_ids.execution_plan_id)
        last_plan_date = values.get(field_ids.last_plan_date)
        if not plan_id or not last_plan_date:
            return None
        return ExecutionPlanMetadata(ticket_id=ticket_id, plan_id=plan_id, last_plan_date=last_plan_date)
