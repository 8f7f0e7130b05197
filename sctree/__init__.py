#!filepath: sctree/__init__.py

from .utils.logger import Logging, logs, init_logging
from .config.app_config import AppConfig

from .core import (
    CancelToken,
    EventChannel,
    ThrottledSink,
    Tree,
    count_tree,
    final_values,
    find_mismatches,
    find_paths,
    grow_tree,
    matches_target,
    render_tree,
)

__version__ = "0.1.0"

__all__ = [
    "logs", "Logging", "init_logging",
    "AppConfig",
    "Tree", "grow_tree",
    "count_tree", "find_paths", "render_tree",
    "final_values", "matches_target", "find_mismatches",
    "CancelToken", "EventChannel", "ThrottledSink",
]
