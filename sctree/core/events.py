#!filepath: sctree/core/events.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class TraversalStatus(str, Enum):
    PROGRESS = "progress"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (TraversalStatus.COMPLETED, TraversalStatus.CANCELLED)


class TraversalState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# -------------------------
# Event
# -------------------------
@dataclass(frozen=True)
class TraversalEvent:
    status: TraversalStatus
    payload: Any = None
    source: Optional[str] = None     # 发出事件的操作名，e.g. "TreeCounter"


# -------------------------
# Payloads
# -------------------------
@dataclass(frozen=True)
class TreeCounts:
    nodes: int = 0
    leaves: int = 0


@dataclass(frozen=True)
class PairProgress:
    """BatchVerifier 的 progress payload：已检查数 / 总数 + 刚检查完的 source"""

    checked: int
    total: int
    source: Any = None
