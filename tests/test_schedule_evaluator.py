"""
调度表达式求值测试
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from plan_agent.core.schedule_evaluator import SimpleCronEvaluator, evaluate_next_run


class TestEvaluateNextRun:
    """下一次运行时间测试"""

    def test_weekly_from_tuesday(self):
        """周二 10:00 求 '0 9 * * 1' 得到下周一 09:00"""
        now = datetime(2024, 1, 2, 10, 0)
        assert evaluate_next_run("0 9 * * 1", now) == datetime(2024, 1, 8, 9, 0)

    def test_weekly_later_same_day(self):
        now = datetime(2024, 1, 8, 8, 30)
        assert evaluate_next_run("0 9 * * 1", now) == datetime(2024, 1, 8, 9, 0)

    def test_weekly_already_passed_today(self):
        now = datetime(2024, 1, 8, 9, 30)
        assert evaluate_next_run("0 9 * * 1", now) == datetime(2024, 1, 15, 9, 0)

    def test_sunday_is_zero(self):
        now = datetime(2024, 1, 2, 10, 0)
        assert evaluate_next_run("0 9 * * 0", now) == datetime(2024, 1, 7, 9, 0)

    def test_hourly_minute_advances_one_hour(self):
        """只设置分钟时推进一小时，秒与微秒清零"""
        now = datetime(2024, 1, 2, 10, 45, 12, 500)
        assert evaluate_next_run("30 * * * *", now) == datetime(2024, 1, 2, 11, 30)

    def test_minute_later_in_same_hour(self):
        now = datetime(2024, 1, 2, 10, 15, 59)
        assert evaluate_next_run("30 * * * *", now) == datetime(2024, 1, 2, 10, 30)

    def test_daily_advances_one_day(self):
        now = datetime(2024, 1, 2, 10, 0)
        assert evaluate_next_run("0 9 * * *", now) == datetime(2024, 1, 3, 9, 0)

    def test_monthly_advances_one_month(self):
        now = datetime(2024, 1, 2, 10, 0)
        assert evaluate_next_run("0 0 1 * *", now) == datetime(2024, 2, 1, 0, 0)

    def test_monthly_rolls_over_year(self):
        now = datetime(2024, 12, 5, 10, 0)
        assert evaluate_next_run("0 9 1 * *", now) == datetime(2025, 1, 1, 9, 0)

    def test_day_overflow_rolls_into_next_month(self):
        """4 月没有 31 日，顺延到 5 月 1 日"""
        now = datetime(2024, 4, 10, 10, 0)
        assert evaluate_next_run("0 9 31 * *", now) == datetime(2024, 5, 1, 9, 0)

    def test_specific_month_and_day(self):
        now = datetime(2024, 1, 2, 10, 0)
        assert evaluate_next_run("0 9 15 6 *", now) == datetime(2024, 6, 15, 9, 0)

    def test_result_strictly_after_now(self):
        now = datetime(2024, 1, 8, 9, 0)
        assert evaluate_next_run("0 9 * * 1", now) > now

    def test_timezone_is_preserved(self):
        tz = ZoneInfo("America/New_York")
        now = datetime(2024, 1, 2, 10, 0, tzinfo=tz)

        next_run = evaluate_next_run("0 9 * * 1", now)

        assert next_run == datetime(2024, 1, 8, 9, 0, tzinfo=tz)
        assert next_run.tzinfo is tz

    @pytest.mark.parametrize("expression", [
        "0 9 * *",
        "0 9 * * 1 2024",
        "",
        "60 * * * *",
        "0 24 * * *",
        "0 9 0 * *",
        "0 9 32 * *",
        "0 9 * 13 *",
        "0 9 * * 7",
        "a 9 * * 1",
        "0 9 * * 1-5",
        "*/5 * * * *",
        "-1 9 * * 1",
    ])
    def test_invalid_expressions_return_none(self, expression):
        assert evaluate_next_run(expression, datetime(2024, 1, 2, 10, 0)) is None


class TestSimpleCronEvaluator:
    """求值器接口测试"""

    def test_delegates_to_evaluate_next_run(self):
        evaluator = SimpleCronEvaluator()
        now = datetime(2024, 1, 2, 10, 0)
        assert evaluator.next_run_from("0 9 * * 1", now) == evaluate_next_run("0 9 * * 1", now)
