"""
配置管理工具

读取 YAML 配置，支持 ${VAR:default} 占位符；
点分键可被同名环境变量覆盖（linear.team_id -> LINEAR_TEAM_ID）
"""

import os
import re
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "PLAN_AGENT_CONFIG"

DEFAULT_CONFIG_PATHS = [
    "config/development.yaml",
    "config/production.yaml",
    "config/config.yaml",
    "config.yaml",
]

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")
_TRUTHY = {"true", "1", "yes", "on"}
_MISSING = object()


class Config:
    """配置管理类"""

    def __init__(self, config_dict: Dict[str, Any]):
        self._config = config_dict

    @staticmethod
    def env_key(key: str) -> str:
        return key.replace(".", "_").upper()

    def _lookup(self, key: str) -> Any:
        node = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值，环境变量优先"""
        env_val = os.getenv(self.env_key(key))
        if env_val is not None:
            return env_val
        value = self._lookup(key)
        return default if value is _MISSING else value

    def get_string(self, key: str, default: str = "") -> str:
        value = self.get(key, default)
        return default if value is None else str(value)

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self.get(key, default))
        except (ValueError, TypeError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        try:
            return float(self.get(key, default))
        except (ValueError, TypeError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    def get_list(self, key: str, default: Optional[list] = None) -> list:
        """获取列表配置，逗号分隔的字符串也会被拆分"""
        value = self.get(key, default)
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return list(default or [])

    def get_dict(self, key: str, default: Optional[dict] = None) -> dict:
        value = self.get(key, default)
        return dict(value) if isinstance(value, dict) else dict(default or {})


def _find_config_file() -> str:
    explicit = os.getenv(CONFIG_ENV_VAR)
    if explicit:
        return explicit
    for path in DEFAULT_CONFIG_PATHS:
        if os.path.exists(path):
            return path
    raise FileNotFoundError("No configuration file found")


def load_config(config_file: Optional[str] = None) -> Config:
    """加载配置文件

    未指定路径时先看 PLAN_AGENT_CONFIG，再按 DEFAULT_CONFIG_PATHS 顺序查找
    """
    config_file = config_file or _find_config_file()
    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML configuration file {config_file}: {e}")

    return Config(_substitute_env(raw))


def _expand(match: "re.Match") -> str:
    name, _, fallback = match.group(1).partition(":")
    return os.getenv(name, fallback)


def _substitute_env(node: Any) -> Any:
    """递归替换 ${VAR} / ${VAR:default} 占位符"""
    if isinstance(node, dict):
        return {k: _substitute_env(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_substitute_env(item) for item in node]
    if isinstance(node, str):
        return _ENV_PATTERN.sub(_expand, node)
    return node
