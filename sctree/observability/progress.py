#!filepath: sctree/observability/progress.py
from __future__ import annotations

import threading
from time import perf_counter
from typing import Callable, Optional

from sctree import logs
from sctree.core.events import PairProgress, TraversalEvent, TraversalStatus, TreeCounts


class ProgressReporter:
    """
    最轻量进度系统：把 TraversalEvent 变成日志行 / 回调。

    - progress 事件：每 every 个输出一次（节流在这里做，算法不节流）
    - partial 事件：不处理（由调用方自己消费）
    - completed / cancelled：输出一次总结
    """

    def __init__(
            self,
            task: str,
            *,
            unit: str = "leaves",
            every: int = 10_000,
            total: Optional[int] = None,
            enabled: bool = True,
            echo: Optional[Callable[[str], None]] = None,
    ):
        self.task = task
        self.unit = unit
        self.every = max(1, every)
        self.total = total
        self.enabled = enabled
        self.echo = echo
        self.current = 0
        self._reported = 0
        self.start = perf_counter()
        # BatchVerifier 的 worker 线程会并发调用
        self._lock = threading.Lock()

    def __call__(self, event: TraversalEvent) -> None:
        if not self.enabled:
            return

        if event.status is TraversalStatus.PROGRESS:
            with self._lock:
                self.current = self._position(event)
                due = self.current % self.every == 0 and self.current != self._reported
                if due:
                    self._reported = self.current
                    line = self._line()
            if due:
                self._report(line)
        elif event.status.terminal:
            elapsed = perf_counter() - self.start
            self._report(
                f"[{self.task}] {event.status.value.upper()} "
                f"{self.current:,} {self.unit} in {elapsed:.2f}s"
            )

    def _position(self, event: TraversalEvent) -> int:
        # 遍历的 payload 是 TreeCounts；BatchVerifier 是 PairProgress；其他按事件计数
        if isinstance(event.payload, TreeCounts):
            return event.payload.leaves if self.unit == "leaves" else event.payload.nodes
        if isinstance(event.payload, PairProgress):
            if self.total is None:
                self.total = event.payload.total
            return event.payload.checked
        return self.current + 1

    def _line(self) -> str:
        if self.total:
            percent = round(self.current / self.total * 100)
            return f"[Progress] {self.task}: {percent}%"
        return f"[Progress] {self.task}: {self.current:,} {self.unit}"

    def _report(self, line: str) -> None:
        logs.info(line)
        if self.echo is not None:
            self.echo(line)
