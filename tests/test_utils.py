"""
配置与日志工具测试
"""

import logging

import pytest

from plan_agent.core.plan_generator import PlanGeneratorConfig
from plan_agent.core.scheduler import SchedulerSettings
from plan_agent.utils.config import Config, load_config
from plan_agent.utils.execution_logger import ExecutionLogger, execution_logger
from plan_agent.utils.logger import get_logger, setup_logging


class TestConfig:
    """配置测试"""

    def test_dotted_keys_and_defaults(self):
        config = Config({"scheduler": {"max_retries": "5", "enabled": "yes"}})

        assert config.get_int("scheduler.max_retries") == 5
        assert config.get_bool("scheduler.enabled") is True
        assert config.get_string("scheduler.missing", "x") == "x"

    def test_environment_overrides_dotted_key(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_TIMEZONE", "Europe/Berlin")
        config = Config({"scheduler": {"timezone": "UTC"}})

        assert config.get_string("scheduler.timezone") == "Europe/Berlin"

    def test_comma_separated_list(self):
        config = Config({"scheduler": {"admin_user_ids": "admin-1, admin-2"}})
        assert config.get_list("scheduler.admin_user_ids") == ["admin-1", "admin-2"]

    def test_load_config_substitutes_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PLAN_AGENT_TEST_TEAM", "team-42")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "linear:\n"
            "  team_id: \"${PLAN_AGENT_TEST_TEAM:}\"\n"
            "  mcp_url: \"${PLAN_AGENT_TEST_URL:http://localhost:9000/mcp}\"\n",
            encoding="utf-8",
        )

        config = load_config(str(config_file))

        assert config.get_string("linear.team_id") == "team-42"
        assert config.get_string("linear.mcp_url") == "http://localhost:9000/mcp"

    def test_load_config_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.yaml"))

    def test_builders_read_sections(self):
        config = Config({
            "plan_generator": {"max_tickets_per_user": 20, "include_completed_tickets": True},
            "scheduler": {"admin_user_ids": ["admin-1"], "max_retries": 2},
        })

        generator_config = PlanGeneratorConfig.from_config(config)
        settings = SchedulerSettings.from_config(config)

        assert generator_config.max_tickets_per_user == 20
        assert generator_config.include_completed_tickets is True
        assert settings.admin_user_ids == ["admin-1"]
        assert settings.max_retries == 2
        assert settings.default_cron == "0 9 * * 1"
        assert settings.timezone == "America/New_York"
        assert settings.default_schedule().admin_user_id == "admin-1"


class TestLogging:
    """日志测试"""

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "plan_agent.log"

        setup_logging(level="debug", log_file=str(log_file))
        get_logger("plan_agent.tests").info("hello from tests")
        for handler in logging.getLogger("plan_agent").handlers:
            handler.flush()

        assert "hello from tests" in log_file.read_text(encoding="utf-8")

    def test_execution_logger_is_singleton(self):
        assert ExecutionLogger() is execution_logger

    def test_execution_logger_disabled_without_file(self, session_timeline_log):
        execution_logger.set_log_file(None)
        execution_logger.session_created("session_1_abcdef", "admin-1", None)

        assert "SESSION_CREATED" not in session_timeline_log.read_text(encoding="utf-8")

    def test_execution_logger_writes_events(self, session_timeline_log):
        execution_logger.session_status_change("session_1_abcdef", "pending", "failed", reason="boom")

        timeline = session_timeline_log.read_text(encoding="utf-8")
        assert "SESSION_STATUS_CHANGE" in timeline
        assert "reason: boom" in timeline
