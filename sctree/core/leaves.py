#!filepath: sctree/core/leaves.py
"""
Leaf pipeline：只关心最终产物，不建树。

和 grow_tree 不同：
  - 没有 id / label / children 的簿记
  - 不做 no-op 折叠（f 返回 [x] 时 x 原样进入下一轮）
  - 整条链是惰性的，matches_target 可以在第一个命中处停下
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Iterable, Iterator, List, Sequence

from sctree.core.events import TraversalEvent, TraversalStatus
from sctree.core.record import Record, display_of, distinct, map_equal
from sctree.core.signals import EventSink
from sctree.core.tree import TransformationFunction


def iter_leaves(
        functions: Sequence[TransformationFunction],
        seed: Iterable[Record],
) -> Iterator[Record]:
    """Lazily yield every final output of ``functions`` applied to ``seed``."""
    stream: Iterator[Record] = iter(seed)
    for f in functions:
        stream = _flat_map(f, stream)
    return stream


def _flat_map(f: TransformationFunction, records: Iterator[Record]) -> Iterator[Record]:
    for rec in records:
        yield from f(rec)


def final_values(
        functions: Sequence[TransformationFunction],
        seed: Iterable[Record],
) -> List[Record]:
    """
    All distinct final outputs, in production order.

    Records are plain mappings and may be unhashable, so the "set" of final
    values is returned as a de-duplicated list.
    """
    return list(distinct(iter_leaves(functions, seed)))


def matches_target(
        functions: Sequence[TransformationFunction],
        source: Record,
        target: Record,
        compare_fields: Sequence[str] = ("display",),
        sink: EventSink | None = None,
) -> bool:
    """
    Does any output for ``source`` equal ``target`` on ``compare_fields``?

    Short-circuits on the first match; the rest of the pipeline is never
    evaluated. If neither record has any of ``compare_fields`` the answer is
    ``True`` (see ``map_equal``).
    """
    for leaf in iter_leaves(functions, (source,)):
        if sink is not None:
            sink(TraversalEvent(TraversalStatus.PROGRESS, leaf, source="matches_target"))
        if map_equal(leaf, target, compare_fields):
            return True
    return False


def format_products(
        functions: Sequence[TransformationFunction],
        sources: Record | Iterable[Record],
) -> List[str]:
    """
    One line per source: ``"<display> → <leaf>, <leaf>, ..."``.

    ``sources`` may be a single record or an iterable of records.
    """
    if isinstance(sources, Mapping):
        sources = (sources,)

    lines = []
    for src in sources:
        products = ", ".join(display_of(leaf) for leaf in iter_leaves(functions, (src,)))
        lines.append(f"{display_of(src)} → {products}")
    return lines
