# sctree/pipeline/parallel/executor.py
from __future__ import annotations

import os
import queue
import threading
from typing import Any, Callable, Iterable, List

from sctree import logs
from sctree.core.signals import CancelToken
from sctree.pipeline.parallel.types import ParallelKind, ParallelOutcome


class ParallelExecutor:
    """
    ParallelExecutor（daemon 线程池）

    目标：
    - worker 为 daemon 线程，进程退出时不会被空闲 worker 拖住
    - 每取一个 item 前轮询 CancelToken；取消后不再开始新 item
    - handler 抛异常：停止派发，在调用方线程原样抛出
    - 结果经 queue.Queue 汇总（多 producer 安全），顺序不保证
    """

    @staticmethod
    def run(
            *,
            kind: ParallelKind,
            items: Iterable[Any],
            handler: Callable[[Any], Any],
            max_workers: int | None = None,
            cancel: CancelToken | None = None,
    ) -> ParallelOutcome:
        items = list(items)
        cancel = cancel if cancel is not None else CancelToken()

        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return ParallelOutcome(total=0, cancelled=cancel.cancelled)

        logs.info(
            f"[ParallelExecutor] start "
            f"kind={kind.value} total={len(items)}"
        )

        workers = ParallelExecutor._resolve_workers(items, max_workers)

        if workers == 1:
            results = ParallelExecutor._run_sequential(items, handler, cancel)
        else:
            results = ParallelExecutor._run_parallel(items, handler, workers, cancel)

        outcome = ParallelOutcome(
            results=results,
            total=len(items),
            cancelled=cancel.cancelled and len(results) < len(items),
        )
        logs.info(
            f"[ParallelExecutor] done kind={kind.value} "
            f"processed={outcome.processed}/{outcome.total} cancelled={outcome.cancelled}"
        )
        return outcome

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return max(1, min(cpu, len(items)))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _run_sequential(
            items: list,
            handler: Callable[[Any], Any],
            cancel: CancelToken,
    ) -> List[Any]:
        results = []
        for item in items:
            if cancel.cancelled:
                break
            results.append(handler(item))
        return results

    @staticmethod
    def _run_parallel(
            items: list,
            handler: Callable[[Any], Any],
            workers: int,
            cancel: CancelToken,
    ) -> List[Any]:
        logs.info(
            f"[ParallelExecutor] run parallel | workers={workers}"
        )

        tasks: "queue.Queue[Any]" = queue.Queue()
        for item in items:
            tasks.put(item)

        done: "queue.Queue[Any]" = queue.Queue()
        errors: List[BaseException] = []
        stop = threading.Event()

        def worker() -> None:
            while not stop.is_set() and not cancel.cancelled:
                try:
                    item = tasks.get_nowait()
                except queue.Empty:
                    return
                try:
                    done.put(handler(item))
                except BaseException as e:
                    errors.append(e)
                    stop.set()
                    return

        threads = [
            threading.Thread(target=worker, name=f"sctree-worker-{i}", daemon=True)
            for i in range(workers)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        if errors:
            logs.error(f"[ParallelExecutor] worker failed: {errors[0]!r}")
            raise errors[0]

        results = []
        while not done.empty():
            results.append(done.get_nowait())
        return results
