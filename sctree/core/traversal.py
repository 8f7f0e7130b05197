#!filepath: sctree/core/traversal.py
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Callable, FrozenSet, Iterable, Iterator, List, Optional, Pattern, Tuple, TypeVar, Union

from sctree import logs
from sctree.core.events import (
    TraversalEvent,
    TraversalState,
    TraversalStatus,
    TreeCounts,
)
from sctree.core.signals import CancelToken, EventSink, NullSink
from sctree.core.tree import TreeNode
from sctree.utils.errors import TraversalStateError

T = TypeVar("T")

TreeSource = Callable[[], TreeNode]


@dataclass(frozen=True)
class TraversalResult:
    status: TraversalStatus
    value: Any
    counts: TreeCounts

    @property
    def completed(self) -> bool:
        return self.status is TraversalStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status is TraversalStatus.CANCELLED


class _Cancelled(Exception):
    pass


class Traversal(ABC):
    """
    深度优先遍历基类（Template Method）

    职责：
      1. 调用 builder 拿到一份全新的 root view，只遍历一次
      2. 每个节点前轮询 CancelToken
      3. 每个节点后发一个 progress 事件（不节流）
      4. 维护 Idle -> Running -> Completed | Cancelled 状态机

    子类只实现：
      - root_context()
      - visit(node, ctx, last) -> child ctx
      - result()

    铁律：
      - 不持有 root 引用，已遍历完的分支可以立即回收
      - 递归深度 = 实际生成的层数；同层兄弟顺序处理
      - 变换函数抛出的异常原样上抛
    """

    def __init__(
            self,
            cancel: CancelToken | None = None,
            sink: EventSink | None = None,
    ):
        self.cancel = cancel if cancel is not None else CancelToken()
        self.sink = sink if sink is not None else NullSink()
        self.state = TraversalState.IDLE
        self.nodes = 0
        self.leaves = 0

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    def counts(self) -> TreeCounts:
        return TreeCounts(nodes=self.nodes, leaves=self.leaves)

    # --------------------------------------------------
    # Contract
    # --------------------------------------------------
    def root_context(self) -> Any:
        return None

    @abstractmethod
    def visit(self, node: TreeNode, ctx: Any, last: bool) -> Any:
        """处理一个节点，返回传给其 children 的 ctx。"""
        raise NotImplementedError

    @abstractmethod
    def result(self) -> Any:
        raise NotImplementedError

    # --------------------------------------------------
    # Driver
    # --------------------------------------------------
    def run(self, tree: TreeSource) -> TraversalResult:
        if self.state is not TraversalState.IDLE:
            raise TraversalStateError(
                f"{self.name} already {self.state.value}; create a new traversal"
            )

        self.state = TraversalState.RUNNING
        logs.info(f"[{self.name}] start {tree!r}")
        start = perf_counter()

        try:
            self._walk(tree(), self.root_context(), True)
        except _Cancelled:
            self.state = TraversalState.CANCELLED
            status = TraversalStatus.CANCELLED
        else:
            self.state = TraversalState.COMPLETED
            status = TraversalStatus.COMPLETED

        value = self.result()
        self._emit(status, value)

        logs.info(
            f"[{self.name}] {status.value} "
            f"nodes={self.nodes} leaves={self.leaves} "
            f"elapsed={perf_counter() - start:.2f}s"
        )
        return TraversalResult(status=status, value=value, counts=self.counts)

    def _walk(self, node: TreeNode, ctx: Any, last: bool) -> None:
        if self.cancel.cancelled:
            raise _Cancelled()

        child_ctx = self.visit(node, ctx, last)

        if node.is_leaf:
            self.leaves += 1
        else:
            self.nodes += 1
        self._emit(TraversalStatus.PROGRESS, self.counts)

        for child, child_last in with_last(node.children):
            self._walk(child, child_ctx, child_last)

    def _emit(self, status: TraversalStatus, payload: Any) -> None:
        self.sink(TraversalEvent(status=status, payload=payload, source=self.name))


def with_last(items: Iterable[T]) -> Iterator[Tuple[T, bool]]:
    """
    (item, is_last) pairs, looking one item ahead.

    All traversals iterate children through this, so node ids are assigned in
    the same order by every traversal of the same tree.
    """
    it = iter(items)
    try:
        prev = next(it)
    except StopIteration:
        return
    for item in it:
        yield prev, False
        prev = item
    yield prev, True


# ============================================================
# Counter
# ============================================================
class TreeCounter(Traversal):
    """Counts non-leaf nodes and leaves."""

    def visit(self, node: TreeNode, ctx: Any, last: bool) -> Any:
        return None

    def result(self) -> TreeCounts:
        return self.counts


# ============================================================
# PathFinder
# ============================================================
@dataclass(frozen=True)
class PathSearch:
    paths: List[List[str]]
    matched_ids: FrozenSet[int]
    # matched 节点及其所有祖先的 id，给 TreeRenderer 高亮用
    path_ids: FrozenSet[int]


@dataclass(frozen=True)
class _PathContext:
    labels: Tuple[str, ...] = ()
    ids: Tuple[int, ...] = ()
    listing: bool = True


class PathFinder(Traversal):
    """
    Finds root-to-node label paths whose last label matches ``pattern``.

    ``pattern`` is matched with ``re.search`` (unanchored). With
    ``leaves_only=False`` interior nodes are tested as well; if such a node
    matches and ``marker`` is set, its listed path ends with the marker and no
    deeper paths are listed on that branch. The walk itself still goes on, so
    deeper matches keep landing in ``matched_ids``.
    """

    def __init__(
            self,
            pattern: Union[str, Pattern[str]],
            *,
            leaves_only: bool = True,
            marker: Optional[str] = None,
            cancel: CancelToken | None = None,
            sink: EventSink | None = None,
    ):
        super().__init__(cancel=cancel, sink=sink)
        self.pattern: Pattern[str] = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.leaves_only = leaves_only
        self.marker = marker

        self.paths: List[List[str]] = []
        self.matched_ids: set[int] = set()
        self.path_ids: set[int] = set()

    def root_context(self) -> _PathContext:
        return _PathContext()

    def visit(self, node: TreeNode, ctx: _PathContext, last: bool) -> _PathContext:
        labels = ctx.labels + (node.label,)
        ids = ctx.ids + (node.id,)
        listing = ctx.listing

        testable = node.is_leaf or not self.leaves_only
        if testable and self.pattern.search(node.label):
            self.matched_ids.add(node.id)
            self.path_ids.update(ids)

            if listing:
                path = list(labels)
                if not node.is_leaf and self.marker is not None:
                    path.append(self.marker)
                    listing = False
                self.paths.append(path)
                self._emit(TraversalStatus.PARTIAL, path)

        return _PathContext(labels=labels, ids=ids, listing=listing)

    def result(self) -> PathSearch:
        return PathSearch(
            paths=list(self.paths),
            matched_ids=frozenset(self.matched_ids),
            path_ids=frozenset(self.path_ids),
        )


# ============================================================
# Renderer
# ============================================================
BRANCH = "├─ "
LAST_BRANCH = "└─ "
PIPE = "│  "
SPACE = "   "


@dataclass(frozen=True)
class RenderFragment:
    prefix: str
    connector: str
    label: str
    function_name: Optional[str]
    highlighted: bool
    depth: int

    @property
    def text(self) -> str:
        line = f"{self.prefix}{self.connector}{self.label}"
        if self.function_name:
            line = f"{line} {self.function_name}"
        return line


@dataclass(frozen=True)
class _RenderContext:
    prefix: str = ""
    depth: int = 0
    root: bool = True


class TreeRenderer(Traversal):
    """
    每个节点发一个 RenderFragment（partial），最终结果 = TreeCounts。
    root 没有 connector；其余节点按是否最后一个孩子选 ├─ / └─。
    """

    def __init__(
            self,
            highlight: Iterable[int] = (),
            *,
            cancel: CancelToken | None = None,
            sink: EventSink | None = None,
    ):
        super().__init__(cancel=cancel, sink=sink)
        self.highlight = frozenset(highlight)

    def root_context(self) -> _RenderContext:
        return _RenderContext()

    def visit(self, node: TreeNode, ctx: _RenderContext, last: bool) -> _RenderContext:
        if ctx.root:
            connector = ""
            child_prefix = ""
        else:
            connector = LAST_BRANCH if last else BRANCH
            child_prefix = ctx.prefix + (SPACE if last else PIPE)

        self._emit(
            TraversalStatus.PARTIAL,
            RenderFragment(
                prefix=ctx.prefix,
                connector=connector,
                label=node.label,
                function_name=node.producing_function,
                highlighted=node.id in self.highlight,
                depth=ctx.depth,
            ),
        )
        return _RenderContext(prefix=child_prefix, depth=ctx.depth + 1, root=False)

    def result(self) -> TreeCounts:
        return self.counts


# ============================================================
# shortcuts
# ============================================================
def count_tree(
        tree: TreeSource,
        cancel: CancelToken | None = None,
        sink: EventSink | None = None,
) -> TraversalResult:
    return TreeCounter(cancel=cancel, sink=sink).run(tree)


def find_paths(
        tree: TreeSource,
        pattern: Union[str, Pattern[str]],
        *,
        leaves_only: bool = True,
        marker: Optional[str] = None,
        cancel: CancelToken | None = None,
        sink: EventSink | None = None,
) -> TraversalResult:
    finder = PathFinder(
        pattern,
        leaves_only=leaves_only,
        marker=marker,
        cancel=cancel,
        sink=sink,
    )
    return finder.run(tree)


def render_tree(
        tree: TreeSource,
        highlight: Iterable[int] = (),
        cancel: CancelToken | None = None,
        sink: EventSink | None = None,
) -> TraversalResult:
    return TreeRenderer(highlight, cancel=cancel, sink=sink).run(tree)
