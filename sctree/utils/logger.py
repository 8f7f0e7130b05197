#!filepath: sctree/utils/logger.py
import os
import sys
import json
from functools import wraps
from time import perf_counter
from loguru import logger
from typing import Callable, Optional, Tuple, Type


class Logging:
    """
    sctree 日志模块
    ---------------------------------------
    - 默认只输出到 stderr（import 时不创建任何文件）
    - configure_file() 之后按日期切割 / 保留周期
    - 包含函数级日志装饰器 catch()
    ---------------------------------------
    """

    def __init__(
        self,
        log_level: str | None = None,
        stderr: bool = True,
    ):
        self.level = (log_level or os.getenv("SCTREE_LOG_LEVEL") or "WARNING").upper()
        self.stderr = stderr
        self.log_dir: Optional[str] = None
        self._configure()

    def _configure(self) -> None:
        """
        配置全局 logger（会清除已有 sink）
        """
        logger.remove()

        if self.stderr:
            logger.add(
                sink=sys.stderr,
                level=self.level,
                format="{time:HH:mm:ss} | {level} | {message}",
            )

    def configure_file(
        self,
        log_dir: str = "logs",
        rotation: str = "1 day",
        retention: str = "30 days",
        level: str | None = None,
    ) -> None:
        """
        追加文件 sink。enqueue=True 使 BatchVerifier 的 worker 线程写日志安全。
        """
        os.makedirs(log_dir, exist_ok=True)
        self.log_dir = log_dir

        logger.add(
            sink=f"{log_dir}/{{time:YYYY-MM-DD}}.log",
            rotation=rotation,
            retention=retention,
            level=(level or self.level).upper(),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {thread.name} | {message}",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.info("-----------sctree file logger initialized-----------")

    # ----------- 日志方法 -----------
    def debug(self, msg: str, *args, **kwargs):
        logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.exception(msg, *args, **kwargs)

    # ---------- 日志装饰器 ----------
    def catch(
        self,
        msg: str = "Exception occurred",
        log_inputs: bool = False,
        log_time: bool = True,
        quiet: Tuple[Type[BaseException], ...] = (),
    ) -> Callable:
        """
        记录异常后原样抛出，不吞异常。
        quiet 中的异常（用户输入错误）不记录，直接抛出。

        用法：
            @logs.catch("load project failed")
            def load_project(path): ...
        """

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):

                if log_inputs:
                    logger.debug(
                        f"[CALL] {func.__name__} args={args}, "
                        f"kwargs={json.dumps(kwargs, ensure_ascii=False, default=str)}"
                    )

                start = perf_counter()

                try:
                    result = func(*args, **kwargs)
                except quiet:
                    raise
                except Exception:
                    logger.exception(f"[ERROR] {func.__name__}: {msg}")
                    raise

                if log_time:
                    cost = perf_counter() - start
                    logger.debug(f"[TIME] {func.__name__} took {cost:.4f}s")

                return result

            return wrapper

        return decorator


def init_logging(cfg) -> Logging:
    """
    按 LogConfig 重新初始化全局 logs（CLI 入口调用一次）
    """
    logs.level = cfg.level.upper()
    logs._configure()
    if cfg.dir:
        logs.configure_file(
            log_dir=cfg.dir,
            rotation=cfg.rotation,
            retention=cfg.retention,
            level=cfg.level,
        )
    return logs


# 默认全局 logs（可被 init_logging 重新配置）
logs = Logging()
