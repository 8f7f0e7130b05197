#!filepath: sctree/core/tree.py
from __future__ import annotations

import functools
import itertools
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional, Sequence, Tuple

from sctree.core.record import Record, display_of

# 用户提供的变换函数：Record -> 0..n 个 Record
TransformationFunction = Callable[[Record], Iterable[Record]]


def function_name(f: TransformationFunction) -> str:
    """Human-readable name of a transformation function."""
    if isinstance(f, functools.partial):
        return function_name(f.func)
    name = getattr(f, "__name__", None) or getattr(f, "name", None)
    return name if isinstance(name, str) else repr(f)


@dataclass(frozen=True, eq=False)
class TreeNode:
    """
    树的一个节点（只在一次遍历中存在，不持久化）。

    - id                 : 本次生成内的序号，root = 0，按生成顺序递增
    - label              : value["display"]
    - producing_function : 生成 children 的函数名；叶子为 None
    - children           : 惰性、一次性的迭代器
    """

    id: int
    label: str
    value: Record
    producing_function: Optional[str] = None
    children: Iterator["TreeNode"] = field(default_factory=lambda: iter(()), repr=False)

    @property
    def is_leaf(self) -> bool:
        # 函数列表在这条分支上已耗尽
        return self.producing_function is None


@dataclass(frozen=True)
class Tree:
    """
    A tree grown by piping ``root`` through ``functions``, stored as a builder.

    The tree can easily outgrow memory, so it is never kept as a value. Calling
    the object regenerates the root view; every traversal owns the view it
    gets and drops it when done. Nothing is cached between calls.
    """

    functions: Tuple[TransformationFunction, ...]
    root: Record

    @property
    def fn_count(self) -> int:
        # 节点数可能非常大、数起来很慢，函数数只是一个粗略替代
        return len(self.functions)

    @property
    def label(self) -> str:
        return display_of(self.root)

    def __call__(self) -> TreeNode:
        ids = itertools.count()
        return _grow(self.functions, 0, self.root, ids)

    def __repr__(self) -> str:
        return (
            f"<Tree from {display_of(self.root)!r} "
            f"through {self.fn_count} functions>"
        )


def grow_tree(functions: Sequence[TransformationFunction], root: Record) -> Tree:
    """
    Pipe ``root`` through ``functions`` while keeping the intermediate results.

    Functions that return exactly ``[x]`` for input ``x`` are skipped and do not
    create a tree level. Returns a :class:`Tree`; call it to get the root node.
    """
    return Tree(functions=tuple(functions), root=root)


# ------------------------------------------------------------------
# internal
# ------------------------------------------------------------------
def _grow(
        functions: Tuple[TransformationFunction, ...],
        start: int,
        value: Record,
        ids: Iterator[int],
) -> TreeNode:
    for i in range(start, len(functions)):
        f = functions[i]
        outputs = list(f(value))

        # no-op：不占 id、不产生层级
        if len(outputs) == 1 and outputs[0] == value:
            continue

        return TreeNode(
            id=next(ids),
            label=display_of(value),
            value=value,
            producing_function=function_name(f),
            children=_children(functions, i + 1, outputs, ids),
        )

    # leaf
    return TreeNode(id=next(ids), label=display_of(value), value=value)


def _children(
        functions: Tuple[TransformationFunction, ...],
        start: int,
        outputs: Sequence[Record],
        ids: Iterator[int],
) -> Iterator[TreeNode]:
    for out in outputs:
        yield _grow(functions, start, out, ids)
