"""
工具模块

包含系统工具函数
"""

from .logger import setup_logging, get_logger
from .config import Config, load_config
from .execution_logger import execution_logger

__all__ = [
    "setup_logging",
    "get_logger",
    "Config",
    "load_config",
    "execution_logger"
]
