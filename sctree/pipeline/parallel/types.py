# sctree/pipeline/parallel/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List


class ParallelKind(str, Enum):
    PAIR = "pair"


@dataclass
class ParallelOutcome:
    # 完成顺序，不保证和输入顺序一致
    results: List[Any] = field(default_factory=list)
    total: int = 0
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return len(self.results)
