#!filepath: sctree/core/verify.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from sctree import logs
from sctree.core.events import PairProgress, TraversalEvent, TraversalState, TraversalStatus
from sctree.core.leaves import matches_target
from sctree.core.record import Record, display_of
from sctree.core.signals import CancelToken, EventSink, NullSink
from sctree.core.tree import TransformationFunction
from sctree.pipeline.parallel import ParallelExecutor, ParallelKind
from sctree.utils.errors import TraversalStateError

Pair = Tuple[Record, Record]


@dataclass(frozen=True)
class VerificationResult:
    status: TraversalStatus
    # 顺序不保证，只有成员关系有意义
    mismatches: List[Record] = field(default_factory=list)
    checked: int = 0
    total: int = 0

    @property
    def completed(self) -> bool:
        return self.status is TraversalStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status is TraversalStatus.CANCELLED


class BatchVerifier:
    """
    Checks many ``(source, target)`` pairs in parallel.

    Each pair runs ``matches_target`` on a daemon worker; a source that does
    not reach its target is a mismatch. One ``progress`` event is sent per
    pair checked and one ``partial`` event per mismatch, then a single
    ``completed`` or ``cancelled`` event carrying the mismatches.
    """

    def __init__(
            self,
            functions: Sequence[TransformationFunction],
            *,
            compare_fields: Sequence[str] = ("display",),
            max_workers: int | None = None,
            cancel: CancelToken | None = None,
            sink: EventSink | None = None,
    ):
        self.functions = tuple(functions)
        self.compare_fields = tuple(compare_fields)
        self.max_workers = max_workers
        self.cancel = cancel if cancel is not None else CancelToken()
        self.sink = sink if sink is not None else NullSink()
        self.state = TraversalState.IDLE
        self._checked = 0
        self._total = 0
        self._lock = threading.Lock()

    def run(self, pairs: Iterable[Pair]) -> VerificationResult:
        if self.state is not TraversalState.IDLE:
            raise TraversalStateError(
                f"BatchVerifier already {self.state.value}; create a new one"
            )
        self.state = TraversalState.RUNNING
        pairs = list(pairs)
        self._total = len(pairs)

        outcome = ParallelExecutor.run(
            kind=ParallelKind.PAIR,
            items=pairs,
            handler=self._check,
            max_workers=self.max_workers,
            cancel=self.cancel,
        )

        mismatches = [src for src, ok in outcome.results if not ok]

        if outcome.cancelled:
            self.state = TraversalState.CANCELLED
            status = TraversalStatus.CANCELLED
        else:
            self.state = TraversalState.COMPLETED
            status = TraversalStatus.COMPLETED

        self.sink(TraversalEvent(status, list(mismatches), source="BatchVerifier"))

        logs.info(
            f"[BatchVerifier] {status.value} checked={outcome.processed}/{outcome.total} "
            f"mismatches={len(mismatches)}"
        )
        return VerificationResult(
            status=status,
            mismatches=mismatches,
            checked=outcome.processed,
            total=outcome.total,
        )

    def _check(self, pair: Pair) -> Tuple[Record, bool]:
        source, target = pair
        ok = matches_target(self.functions, source, target, self.compare_fields)

        with self._lock:
            self._checked += 1
            progress = PairProgress(checked=self._checked, total=self._total, source=source)

        self.sink(TraversalEvent(TraversalStatus.PROGRESS, progress, source="BatchVerifier"))
        if not ok:
            logs.debug(f"[BatchVerifier] mismatch {display_of(source)!r}")
            self.sink(TraversalEvent(TraversalStatus.PARTIAL, source, source="BatchVerifier"))

        return source, ok


def find_mismatches(
        functions: Sequence[TransformationFunction],
        pairs: Iterable[Pair],
        cancel: CancelToken | None = None,
        sink: EventSink | None = None,
        *,
        compare_fields: Sequence[str] = ("display",),
        max_workers: int | None = None,
) -> List[Record]:
    """Sources that do not produce their target (order not guaranteed)."""
    verifier = BatchVerifier(
        functions,
        compare_fields=compare_fields,
        max_workers=max_workers,
        cancel=cancel,
        sink=sink,
    )
    return verifier.run(pairs).mismatches
