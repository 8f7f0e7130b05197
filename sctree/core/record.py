#!filepath: sctree/core/record.py
from __future__ import annotations

from collections import Counter
from typing import Any, Hashable, Iterable, Iterator, List, Mapping, Sequence

# Record = 用户定义的 mapping，至少带 "display"（str）
# 可选 "link"（int / str）用于 source ↔ target 配对
Record = Mapping[str, Any]

DISPLAY = "display"
LINK = "link"


def display_of(record: Record) -> str:
    """
    取 record 的 display。

    缺失时直接抛 KeyError：上游已校验，这里不做兜底。
    """
    return record[DISPLAY]


def evolve(record: Record, **changes: Any) -> dict:
    """Return a new record with ``changes`` applied; the input is never mutated."""
    out = dict(record)
    out.update(changes)
    return out


def map_equal(x: Record, y: Record, keys: Sequence[str]) -> bool:
    """
    Compare two records on selected keys.

    Warning: if both records are missing all of the keys, the result is
    ``True`` (both selections are empty).
    """
    return _select(x, keys) == _select(y, keys)


def _select(record: Record, keys: Sequence[str]) -> dict:
    return {k: record[k] for k in keys if k in record}


def duplicates(items: Iterable[Hashable], n: int = 2) -> List[Hashable]:
    """Values appearing at least ``n`` times, ``None`` ignored."""
    freq = Counter(x for x in items if x is not None)
    return [x for x, f in freq.items() if f >= n]


def distinct(records: Iterable[Record]) -> Iterator[Record]:
    """
    按值去重，保持首次出现顺序。

    record 的值可能不可哈希（list 等），此时退化为线性比较。
    """
    seen_hashable: set = set()
    seen_other: list = []

    for rec in records:
        try:
            key = frozenset(rec.items())
        except TypeError:
            if rec in seen_other:
                continue
            seen_other.append(rec)
            yield rec
            continue

        if key in seen_hashable:
            continue
        seen_hashable.add(key)
        yield rec
