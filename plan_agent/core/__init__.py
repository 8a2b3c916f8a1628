"""
核心模块

包含计划生成与调度会话的核心组件：
- 计划生成引擎
- 调度表达式求值
- 调度与会话核心
"""

from .plan_generator import PlanGenerator, PlanGeneratorConfig, ConfigValidationResult
from .schedule_evaluator import NextRunEvaluator, SimpleCronEvaluator, evaluate_next_run
from .scheduler import PlanScheduler, SchedulerSettings

__all__ = [
    "PlanGenerator",
    "PlanGeneratorConfig",
    "ConfigValidationResult",
    "NextRunEvaluator",
    "SimpleCronEvaluator",
    "evaluate_next_run",
    "PlanScheduler",
    "SchedulerSettings"
]
