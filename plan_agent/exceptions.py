"""
异常定义

校验类错误同时继承 ValueError，便于边界层统一处理
"""


class PlanAgentError(Exception):
    """系统基础异常"""


class ConfigValidationError(PlanAgentError, ValueError):
    """配置校验失败"""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ScheduleValidationError(PlanAgentError, ValueError):
    """调度表达式或时区不合法"""


class InvalidSessionStatusError(PlanAgentError, ValueError):
    """不在枚举范围内的会话状态"""


class TeamNotFoundError(PlanAgentError):
    """团队不存在"""

    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__(f"Team with ID {team_id} not found")
