"""
Linear Plan Agent

从 Linear 工单生成个人执行计划与团队汇总，投递到 Slack 并写回工单
"""

__version__ = "1.0.0"
