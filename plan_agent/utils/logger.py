"""
日志配置工具

plan_agent 命名空间输出到控制台，可选追加滚动日志文件；
uvicorn 的访问日志与应用日志使用同一格式
"""

import logging
import logging.config
import sys
from typing import Any, Dict, List, Optional

ROOT_LOGGER_NAME = "plan_agent"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _build_logging_config(level: str, format_string: str, log_file: Optional[str]) -> Dict[str, Any]:
    handler_names: List[str] = ["console"]
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "console",
            "stream": sys.stdout,
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "file",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "encoding": "utf-8",
        }
        handler_names.append("file")

    namespaced = {"level": level, "handlers": list(handler_names), "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": format_string, "datefmt": DATE_FORMAT},
            "file": {"format": FILE_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handler_names)},
        "loggers": {
            ROOT_LOGGER_NAME: namespaced,
            "uvicorn": dict(namespaced),
            "uvicorn.access": dict(namespaced),
        },
    }


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """设置日志配置"""
    level = level.upper()
    logging.config.dictConfig(_build_logging_config(level, format_string or DEFAULT_FORMAT, log_file))
    logging.getLogger(ROOT_LOGGER_NAME).info(
        f"Logging initialized (level={level}, file={log_file or '-'})"
    )


def get_logger(name: str) -> logging.Logger:
    """获取 plan_agent 命名空间下的日志器"""
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
