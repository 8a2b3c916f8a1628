"""
系统常量定义
"""


class SystemConstants:
    """系统常量"""

    # ID生成策略
    PLAN_ID_PATTERN = "plan_{user_id}_{timestamp}_{suffix}"
    SESSION_ID_PATTERN = "session_{timestamp}_{suffix}"

    # 默认调度配置：每周一 09:00
    DEFAULT_CRON_EXPRESSION = "0 9 * * 1"
    DEFAULT_TIMEZONE = "America/New_York"
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_SESSION_MAX_AGE_HOURS = 24

    # 计划生成
    DEFAULT_MAX_TICKETS_PER_USER = 50
    MAX_TICKETS_PER_USER_LIMIT = 1000
    MANY_IN_PROGRESS_THRESHOLD = 5
    MANY_OPEN_THRESHOLD = 10

    # 写回自定义字段
    DEFAULT_PLAN_ID_FIELD = "execution_plan_id"
    DEFAULT_LAST_PLAN_DATE_FIELD = "last_plan_date"
