"""
Linear Plan Agent 主应用入口

从 Linear 工单生成执行计划，投递到 Slack，并把结果写回 Linear
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plan_agent import __version__
from plan_agent.api import session_router
from plan_agent.core import PlanGenerator, PlanGeneratorConfig, PlanScheduler, SchedulerSettings
from plan_agent.infrastructure import DestinationDirectory, MCPClient, McpMessagingGateway, McpTicketGateway
from plan_agent.services import LinearStorageService, StorageConfig
from plan_agent.utils import execution_logger, get_logger, load_config, setup_logging

logger = get_logger(__name__)


def build_scheduler(config) -> PlanScheduler:
    """按配置组装调度核心"""
    linear_client = MCPClient(
        config.get_string("linear.mcp_url"),
        timeout_seconds=config.get_float("linear.timeout_seconds", 30.0),
    )
    slack_client = MCPClient(
        config.get_string("slack.mcp_url"),
        timeout_seconds=config.get_float("slack.timeout_seconds", 30.0),
    )

    ticket_gateway = McpTicketGateway(linear_client)
    messaging_gateway = McpMessagingGateway(slack_client, DestinationDirectory.from_config(config))

    generator_config = PlanGeneratorConfig.from_config(config)
    validation = generator_config.validate()
    if not validation.is_valid:
        raise ValueError(f"Invalid plan generator configuration: {'; '.join(validation.errors)}")

    return PlanScheduler(
        plan_generator=PlanGenerator(ticket_gateway, generator_config),
        messaging_gateway=messaging_gateway,
        settings=SchedulerSettings.from_config(config),
        storage_service=LinearStorageService(ticket_gateway, StorageConfig.from_config(config)),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    scheduler = None
    try:
        logger.info("Starting Linear Plan Agent...")

        load_dotenv()
        config = load_config()
        setup_logging(
            level=config.get_string("logging.level", "INFO"),
            log_file=config.get_string("logging.file") or None,
        )
        execution_logger.set_log_file(config.get_string("logging.execution_log") or None)
        logger.info("Configuration loaded successfully")

        scheduler = build_scheduler(config)
        app.state.scheduler = scheduler

        if config.get_bool("scheduler.auto_schedule", False):
            schedule = scheduler.settings.default_schedule(team_id=config.get_string("linear.team_id") or None)
            if schedule.admin_user_id:
                await scheduler.schedule_execution(schedule)
            else:
                logger.warning("scheduler.auto_schedule is on but no admin user is configured")

        logger.info("Linear Plan Agent started successfully")
        yield

    except Exception as e:
        logger.error(f"Failed to start Linear Plan Agent: {e}")
        raise

    finally:
        logger.info("Stopping Linear Plan Agent...")
        if scheduler is not None:
            await scheduler.shutdown()
        logger.info("Linear Plan Agent stopped")


app = FastAPI(
    title="Linear Plan Agent API",
    description="Linear 工单执行计划生成、Slack 投递与写回",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router, prefix="/api/v1")


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": "Welcome to Linear Plan Agent",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health")
async def health_check():
    """健康检查"""
    return {
        "status": "healthy",
        "service": "linear-plan-agent",
        "version": __version__,
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn

    try:
        load_dotenv()
        config = load_config()
        uvicorn.run(
            "main:app",
            host=config.get_string("api.host", "0.0.0.0"),
            port=config.get_int("api.port", 8000),
            reload=True,
            log_level="info"
        )
    except Exception as e:
        logging.getLogger(__name__).error(f"Failed to start server: {e}")
        raise
