"""
执行会话API接口

调度与会话核心的HTTP边界：触发执行、查询会话、状态更新、清理与调度管理
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..core.scheduler import PlanScheduler
from ..exceptions import PlanAgentError, ScheduleValidationError
from ..models.execution import ScheduleConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class TriggerRequest(BaseModel):
    """触发执行请求模型"""
    admin_user_id: Optional[str] = None
    team_id: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    """状态更新请求模型，状态值只允许四种"""
    status: Literal["pending", "confirmed", "completed", "failed"]
    error_message: Optional[str] = None


class CleanupRequest(BaseModel):
    """清理请求模型"""
    max_age_hours: Optional[float] = Field(default=None, ge=0)


class ScheduleRequest(BaseModel):
    """调度请求模型，未提供的字段使用默认配置"""
    cron_expression: Optional[str] = None
    timezone: Optional[str] = None
    admin_user_id: Optional[str] = None
    enabled: bool = True
    team_id: Optional[str] = None
    summary_channel_id: Optional[str] = None
    summary_user_group_id: Optional[str] = None


class SessionListResponse(BaseModel):
    """会话列表响应模型"""
    sessions: List[Dict[str, Any]]
    total: int


def get_scheduler(request: Request) -> PlanScheduler:
    """获取调度核心实例"""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=500, detail="Scheduler not available")
    return scheduler


@router.post("/trigger")
async def trigger_execution(
    request: TriggerRequest,
    scheduler: PlanScheduler = Depends(get_scheduler)
):
    """手动触发一次执行"""
    admin_user_id = request.admin_user_id or scheduler.settings.default_admin
    if not admin_user_id:
        raise HTTPException(status_code=400, detail="admin_user_id is required")

    logger.info(f"Manual execution triggered by {admin_user_id} (team={request.team_id or '-'})")
    session = await scheduler.trigger_execution(admin_user_id, request.team_id)
    return session.to_dict()


@router.get("/", response_model=SessionListResponse)
async def list_sessions(scheduler: PlanScheduler = Depends(get_scheduler)):
    """列出所有会话"""
    sessions = scheduler.get_active_sessions()
    return SessionListResponse(sessions=[s.to_dict() for s in sessions], total=len(sessions))


@router.get("/stats")
async def get_stats(scheduler: PlanScheduler = Depends(get_scheduler)):
    """会话统计"""
    return scheduler.get_execution_stats().to_dict()


@router.post("/cleanup")
async def cleanup_sessions(
    request: CleanupRequest,
    scheduler: PlanScheduler = Depends(get_scheduler)
):
    """清理旧会话"""
    before = len(scheduler.get_active_sessions())
    scheduler.cleanup_old_sessions(request.max_age_hours)
    remaining = len(scheduler.get_active_sessions())
    return {"removed": max(before - remaining, 0), "remaining": remaining}


@router.get("/schedule")
async def get_schedule(scheduler: PlanScheduler = Depends(get_scheduler)):
    """当前调度信息"""
    info = scheduler.get_schedule_info()
    return {"schedule": info.to_dict() if info else None}


@router.post("/schedule")
async def schedule_execution(
    request: ScheduleRequest,
    scheduler: PlanScheduler = Depends(get_scheduler)
):
    """挂载计时器"""
    defaults = scheduler.settings.default_schedule(request.admin_user_id, request.team_id)
    config = ScheduleConfig(
        cron_expression=request.cron_expression or defaults.cron_expression,
        timezone=request.timezone or defaults.timezone,
        admin_user_id=defaults.admin_user_id,
        enabled=request.enabled,
        team_id=request.team_id,
        summary_channel_id=request.summary_channel_id,
        summary_user_group_id=request.summary_user_group_id,
    )
    if config.enabled and not config.admin_user_id:
        raise HTTPException(status_code=400, detail="admin_user_id is required")

    try:
        next_run = await scheduler.schedule_execution(config)
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "scheduled": next_run is not None,
        "next_execution": next_run.isoformat() if next_run else None,
        "config": config.to_dict(),
    }


@router.delete("/schedule")
async def cancel_schedule(scheduler: PlanScheduler = Depends(get_scheduler)):
    """取消计时器"""
    scheduler.cancel_scheduled_execution()
    return {"cancelled": True}


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    scheduler: PlanScheduler = Depends(get_scheduler)
):
    """获取会话"""
    session = scheduler.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.to_dict()


@router.put("/{session_id}/status")
async def update_session_status(
    session_id: str,
    request: StatusUpdateRequest,
    scheduler: PlanScheduler = Depends(get_scheduler)
):
    """更新会话状态"""
    try:
        updated = scheduler.update_session_status(session_id, request.status, request.error_message)
    except PlanAgentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if not updated:
        raise HTTPException(status_code=404, detail="Session not found")
    return scheduler.get_session(session_id).to_dict()


@router.post("/{session_id}/retry")
async def retry_session(
    session_id: str,
    scheduler: PlanScheduler = Depends(get_scheduler)
):
    """重跑失败会话"""
    existing = scheduler.get_session(session_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Session not found")

    session = await scheduler.retry_failed_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=409,
            detail=f"Session {session_id} cannot be retried (status={existing.status.value}, retries={existing.retry_count})"
        )
    return session.to_dict()
