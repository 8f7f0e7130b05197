#!filepath: sctree/core/signals.py
from __future__ import annotations

import queue
import threading
from typing import Callable, Iterator, Optional, Protocol

from sctree.core.events import TraversalEvent, TraversalStatus


class EventSink(Protocol):
    def __call__(self, event: TraversalEvent) -> None: ...


class CancelToken:
    """
    协作式取消信号。

    只会被轮询（每个节点一次 / 每个 pair 一次），从不抢占。
    一旦 cancel()，对这次操作是终态。
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __bool__(self) -> bool:
        return self.cancelled


class NullSink:
    """丢弃所有事件。"""

    def __call__(self, event: TraversalEvent) -> None:
        return None


class CallbackSink:
    """把事件转给一个普通函数，可选按 status 过滤。"""

    def __init__(
            self,
            callback: Callable[[TraversalEvent], None],
            statuses: Optional[set[TraversalStatus]] = None,
    ) -> None:
        self.callback = callback
        self.statuses = statuses

    def __call__(self, event: TraversalEvent) -> None:
        if self.statuses is None or event.status in self.statuses:
            self.callback(event)


class ThrottledSink:
    """
    只转发每第 N 个 progress 事件；partial / completed / cancelled 总是转发。

    节流属于展示层，算法本身每个节点都发 progress。
    """

    def __init__(self, sink: EventSink, every: int = 10_000) -> None:
        if every < 1:
            raise ValueError("every must be >= 1")
        self.sink = sink
        self.every = every
        self._seen = 0
        self._lock = threading.Lock()

    def __call__(self, event: TraversalEvent) -> None:
        if event.status is not TraversalStatus.PROGRESS:
            self.sink(event)
            return

        with self._lock:
            self._seen += 1
            forward = self._seen % self.every == 0

        if forward:
            self.sink(event)


_CLOSED = object()


class EventChannel:
    """
    有界事件通道（线程安全，多 producer / 单 consumer）。

    策略：队列满时 producer 阻塞，直到 consumer 取走事件；
    慢 consumer 只会拖慢遍历，不会造成无界缓存。
    """

    def __init__(self, maxsize: int = 1024) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)

    def __call__(self, event: TraversalEvent) -> None:
        self._queue.put(event, block=True)

    def close(self) -> None:
        self._queue.put(_CLOSED, block=True)

    def get(self, timeout: Optional[float] = None) -> Optional[TraversalEvent]:
        """取一个事件；通道关闭后返回 None。"""
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            return None
        return item

    def __iter__(self) -> Iterator[TraversalEvent]:
        while True:
            item = self.get()
            if item is None:
                return
            yield item
