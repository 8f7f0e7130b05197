#!filepath: sctree/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from .engine_config import EngineConfig
from .log_config import LogConfig


def package_root() -> str:
    """
    返回 sctree 包目录（基于当前文件位置推导）:
    sctree/config/app_config.py → sctree/config → sctree
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class AppConfig(BaseModel):
    log: LogConfig = LogConfig()
    engine: EngineConfig = EngineConfig()

    @classmethod
    def load(cls, path: str | None = None, env_file: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 sctree/config/base.yml
        - .env 默认取当前工作目录（找不到就跳过）
        - 环境变量覆盖：SCTREE_LOG_LEVEL / SCTREE_MAX_WORKERS
        """
        load_dotenv(env_file or os.path.join(os.getcwd(), ".env"))

        if path is None:
            path = os.path.join(package_root(), "config", "base.yml")

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        raw.setdefault("log", {})
        raw.setdefault("engine", {})

        level = os.getenv("SCTREE_LOG_LEVEL")
        if level:
            raw["log"]["level"] = level

        workers = os.getenv("SCTREE_MAX_WORKERS")
        if workers:
            raw["engine"]["max_workers"] = int(workers)

        return cls(**raw)
