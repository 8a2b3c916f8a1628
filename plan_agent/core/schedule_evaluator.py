"""
调度表达式求值

五段式表达式（分 时 日 月 周）求出下一次运行时间。
这是尽力而为的单次求值器，不是完整的 cron 日历：
- 只支持 * 或单个数字
- 日与周同时配置时不做相互校验（已知限制）
可通过实现 NextRunEvaluator 替换为标准实现
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

logger = logging.getLogger(__name__)

WILDCARD = "*"

# (字段名, 最小值, 最大值)
FIELD_RANGES = [
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("weekday", 0, 6),
]


class NextRunEvaluator:
    """下一次运行时间求值接口"""

    def next_run_from(self, expression: str, now: datetime) -> Optional[datetime]:
        raise NotImplementedError


class SimpleCronEvaluator(NextRunEvaluator):
    """默认实现：逐字段覆盖当前时间"""

    def next_run_from(self, expression: str, now: datetime) -> Optional[datetime]:
        return evaluate_next_run(expression, now)


def split_expression(expression: str) -> List[str]:
    return expression.split()


def _parse_field(raw: str, low: int, high: int) -> Optional[int]:
    if not raw.isdigit():
        return None
    value = int(raw)
    if value < low or value > high:
        return None
    return value


def _with_day(base: datetime, day: int) -> datetime:
    """设置日，超出当月天数时顺延到下个月"""
    return base.replace(day=1) + timedelta(days=day - 1)


def _add_months(base: datetime, months: int) -> datetime:
    """按月偏移，保留日并在溢出时顺延"""
    index = base.month - 1 + months
    first = base.replace(year=base.year + index // 12, month=index % 12 + 1, day=1)
    return first + timedelta(days=base.day - 1)


def _with_month(base: datetime, month: int) -> datetime:
    return _add_months(base, month - base.month)


def _cron_weekday(value: datetime) -> int:
    """Python weekday(周一=0) 转为 cron 周(周日=0)"""
    return (value.weekday() + 1) % 7


def evaluate_next_run(expression: str, now: datetime) -> Optional[datetime]:
    """求下一次运行时间；表达式不合法时返回 None"""
    fields = split_expression(expression)
    if len(fields) != 5:
        logger.debug(f"Expected 5 fields in schedule expression, got {len(fields)}: {expression!r}")
        return None

    values = {}
    for raw, (name, low, high) in zip(fields, FIELD_RANGES):
        if raw == WILDCARD:
            values[name] = None
            continue
        parsed = _parse_field(raw, low, high)
        if parsed is None:
            logger.debug(f"Invalid {name} field {raw!r} in schedule expression {expression!r}")
            return None
        values[name] = parsed

    next_run = now
    if values["minute"] is not None:
        next_run = next_run.replace(minute=values["minute"], second=0, microsecond=0)
    if values["hour"] is not None:
        next_run = next_run.replace(hour=values["hour"])
    if values["day"] is not None:
        next_run = _with_day(next_run, values["day"])
    if values["month"] is not None:
        next_run = _with_month(next_run, values["month"])
    if values["weekday"] is not None:
        days_until = (values["weekday"] - _cron_weekday(next_run) + 7) % 7
        next_run = next_run + timedelta(days=days_until)

    # 不晚于当前时间时，按最具体的字段推进一次
    if next_run <= now:
        if values["weekday"] is not None:
            next_run = next_run + timedelta(days=7)
        elif values["day"] is not None:
            next_run = _add_months(next_run, 1)
        elif values["hour"] is not None:
            next_run = next_run + timedelta(days=1)
        elif values["minute"] is not None:
            next_run = next_run + timedelta(hours=1)

    return next_run
