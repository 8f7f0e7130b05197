#!filepath: sctree/cli.py

import re
import threading
from functools import wraps
from pathlib import Path
from typing import Any, Callable, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from sctree import __version__
from sctree.config.app_config import AppConfig
from sctree.core.events import PairProgress, TraversalEvent, TraversalStatus, TreeCounts
from sctree.core.leaves import format_products, matches_target
from sctree.core.record import Record, display_of
from sctree.core.signals import CancelToken, EventChannel, EventSink, ThrottledSink
from sctree.core.traversal import PathFinder, RenderFragment, TreeCounter, TreeRenderer
from sctree.core.tree import grow_tree
from sctree.core.verify import BatchVerifier
from sctree.observability.progress import ProgressReporter
from sctree.project.loader import Project, load_project
from sctree.utils.errors import UserInputError
from sctree.utils.logger import init_logging

app = typer.Typer(help="sctree: grow, search and verify sound-change trees")
console = Console()
err_console = Console(stderr=True)

_settings: dict[str, AppConfig] = {}

# show: 函数数达到这个值时先确认再打印
CONFIRM_FN_COUNT = 10
# show --output: 高亮行的行尾标记
HIGHLIGHT_MARK = " *"


def settings() -> AppConfig:
    if "app" not in _settings:
        _settings["app"] = AppConfig.load()
    return _settings["app"]


@app.callback()
def main(
        config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
        log_file: bool = typer.Option(False, "--log-file", help="Also write logs to log.dir"),
):
    cfg = AppConfig.load(str(config) if config else None)
    if not log_file:
        cfg.log.dir = None
    _settings["app"] = cfg
    init_logging(cfg.log)


def user_errors(func: Callable) -> Callable:
    """UserInputError -> 红色提示 + exit code 1，不打 traceback。"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UserInputError as e:
            err_console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(code=1)

    return wrapper


# ------------------------------------------------------------------
# driving an operation with progress + Ctrl-C cancellation
# ------------------------------------------------------------------
def drive(
        task: str,
        operation: Callable[[CancelToken, EventSink], Any],
        on_partial: Callable[[Any], None] = lambda payload: None,
        unit: str = "leaves",
        screen_every: Optional[int] = None,
) -> Any:
    """
    在 daemon 线程里跑 operation，主线程消费 EventChannel。
    Ctrl-C 只设置 CancelToken，之后继续把通道读空。
    进度同时经 ProgressReporter 写进日志（每 progress_every 一行）。
    screen_every：屏幕进度的节流，默认同 progress_every；按 pair 计的操作传 1。
    """
    cfg = settings().engine
    cancel = CancelToken()
    channel = EventChannel(maxsize=cfg.channel_size)
    screen = ThrottledSink(channel, every=screen_every or cfg.progress_every)
    reporter = ProgressReporter(task, unit=unit, every=cfg.progress_every)

    def sink(event: TraversalEvent) -> None:
        reporter(event)
        screen(event)

    box: dict[str, Any] = {}

    def target() -> None:
        try:
            box["result"] = operation(cancel, sink)
        except BaseException as e:
            box["error"] = e
        finally:
            channel.close()

    worker = threading.Thread(target=target, name="sctree-operation", daemon=True)
    worker.start()

    def consume() -> None:
        for event in channel:
            handle(event)

    def handle(event: TraversalEvent) -> None:
        if event.status is TraversalStatus.PARTIAL:
            on_partial(event.payload)
        elif event.status is TraversalStatus.PROGRESS:
            line = _progress_text(event.payload, unit)
            if line is not None:
                err_console.print(line, end="\r")
        elif event.status is TraversalStatus.CANCELLED:
            err_console.print("[yellow]Cancelled.[/yellow]" + " " * 20)

    try:
        consume()
    except KeyboardInterrupt:
        cancel.cancel()
        consume()

    worker.join()
    if "error" in box:
        raise box["error"]
    return box["result"]


def _progress_text(payload: Any, unit: str) -> Optional[str]:
    if isinstance(payload, TreeCounts):
        count = payload.leaves if unit == "leaves" else payload.nodes
        return f"Processing… {count:,} {unit}."
    if isinstance(payload, PairProgress):
        return f"Processing… {payload.checked:,}/{payload.total:,} {unit}."
    return None


def _load(project_file: Path) -> Project:
    return load_project(project_file)


def _compile(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise UserInputError(f"Invalid pattern {pattern!r}: {e}") from None


def _pick_source(project: Project, source: str, by_link: bool) -> Record:
    if by_link:
        link: Any = int(source) if source.lstrip("-").isdigit() else source
        return project.source(link)
    return project.find_source(source)


# ------------------------------------------------------------------
# commands
# ------------------------------------------------------------------
@app.command()
def version():
    console.print(f"sctree v{__version__}")


@app.command()
@user_errors
def info(project_file: Path):
    """项目基本信息"""
    project = _load(project_file)
    targets = len(project.target_data) if project.target_data is not None else 0
    console.print(
        f"Project [bold]{escape(str(project.project_file))}[/bold]\n"
        f"Contains {len(project.functions)} functions, "
        f"{len(project.source_data)} source data items, and {targets} target data items."
    )
    for idx, name in enumerate(project.function_names(), start=1):
        console.print(f"  {idx:>3}. {escape(name)}")


@app.command()
@user_errors
def count(
        project_file: Path,
        source: str,
        by_link: bool = typer.Option(False, "--link", help="SOURCE is a link, not a display"),
):
    """数节点和叶子"""
    project = _load(project_file)
    tree = grow_tree(project.active_functions, _pick_source(project, source, by_link))

    result = drive("count", lambda cancel, sink: TreeCounter(cancel=cancel, sink=sink).run(tree))

    status = "" if result.completed else " (cancelled, partial)"
    console.print(
        f"A tree from \"{escape(tree.label)}\" with "
        f"{result.counts.nodes:,} nodes and {result.counts.leaves:,} leaves{status}."
    )


@app.command()
@user_errors
def find(
        project_file: Path,
        source: str,
        pattern: str,
        by_link: bool = typer.Option(False, "--link", help="SOURCE is a link, not a display"),
        interior: bool = typer.Option(False, "--interior", help="Also test interior nodes"),
):
    """查找从 root 到匹配节点的路径"""
    project = _load(project_file)
    tree = grow_tree(project.active_functions, _pick_source(project, source, by_link))
    regex = _compile(pattern)
    marker = settings().engine.marker if interior else None

    def show_path(path: List[str]) -> None:
        console.print(" → ".join(escape(label) for label in path))

    result = drive(
        "find",
        lambda cancel, sink: PathFinder(
            regex,
            leaves_only=not interior,
            marker=marker,
            cancel=cancel,
            sink=sink,
        ).run(tree),
        on_partial=show_path,
    )

    found = len(result.value.paths)
    plural = "1 path" if found == 1 else f"{found:,} paths"
    console.print(f"Found {plural} from \"{escape(tree.label)}\" to \"{escape(pattern)}\".")


@app.command()
@user_errors
def show(
        project_file: Path,
        source: str,
        by_link: bool = typer.Option(False, "--link", help="SOURCE is a link, not a display"),
        output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the tree to a file"),
        highlight: Optional[str] = typer.Option(
            None, "--highlight", help="Highlight paths matching (a trailing * in --output files)"
        ),
        yes: bool = typer.Option(False, "--yes", "-y", help="Print large trees without asking"),
):
    """画出整棵树"""
    project = _load(project_file)
    tree = grow_tree(project.active_functions, _pick_source(project, source, by_link))

    # 树随函数数指数增长：函数多时先确认
    if tree.fn_count >= CONFIRM_FN_COUNT and not yes:
        console.print(f"A tree from \"{escape(tree.label)}\" through {tree.fn_count} functions.")
        if not typer.confirm("Do you want to print the entire tree?", default=False):
            return

    marked: frozenset[int] = frozenset()
    if highlight:
        regex = _compile(highlight)
        search = drive("find", lambda cancel, sink: PathFinder(regex, cancel=cancel, sink=sink).run(tree))
        if search.cancelled:
            return
        marked = search.value.path_ids

    handle = output.open("w", encoding="utf-8") if output else None
    try:
        def emit(fragment: RenderFragment) -> None:
            if handle is not None:
                mark = HIGHLIGHT_MARK if fragment.highlighted else ""
                handle.write(fragment.text + mark + "\n")
                return
            text = escape(fragment.text)
            console.print(f"[bold yellow]{text}[/bold yellow]" if fragment.highlighted else text)

        result = drive(
            "show",
            lambda cancel, sink: TreeRenderer(marked, cancel=cancel, sink=sink).run(tree),
            on_partial=emit,
            unit="nodes",
        )
    finally:
        if handle is not None:
            handle.close()

    console.print(f"{result.counts.nodes:,} nodes, {result.counts.leaves:,} leaves.")


@app.command()
@user_errors
def check(
        project_file: Path,
        source: str,
        by_link: bool = typer.Option(False, "--link", help="SOURCE is a link, not a display"),
        field: Optional[List[str]] = typer.Option(None, "--field", "-f", help="Compare on these fields"),
):
    """单个 source 是否能生成它的 target"""
    project = _load(project_file)
    src = _pick_source(project, source, by_link)
    target = project.target(src.get("link"))
    fields = field or settings().engine.compare_fields

    ok = matches_target(project.active_functions, src, target, fields)
    mark = "[green]yes[/green]" if ok else "[red]no[/red]"
    console.print(f"\"{escape(display_of(src))}\" → \"{escape(display_of(target))}\": {mark}")
    if not ok:
        raise typer.Exit(code=2)


@app.command()
@user_errors
def irregulars(
        project_file: Path,
        field: Optional[List[str]] = typer.Option(None, "--field", "-f", help="Compare on these fields"),
        workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1),
):
    """找出不能生成 target 的 source"""
    project = _load(project_file)
    cfg = settings().engine
    fields = field or cfg.compare_fields
    pairs = project.pairs()

    result = drive(
        "irregulars",
        lambda cancel, sink: BatchVerifier(
            project.active_functions,
            compare_fields=fields,
            max_workers=workers or cfg.max_workers,
            cancel=cancel,
            sink=sink,
        ).run(pairs),
        unit="pairs",
        screen_every=1,
    )

    for src in result.mismatches:
        console.print(f"  {escape(display_of(src))} (link={src.get('link')!r})")
    total = f"{len(result.mismatches)} of {result.checked} checked"
    console.print(f"Irregular: {total}" + ("" if result.completed else " (cancelled)"))


@app.command()
@user_errors
def products(
        project_file: Path,
        source: Optional[str] = typer.Argument(None),
        by_link: bool = typer.Option(False, "--link", help="SOURCE is a link, not a display"),
):
    """列出最终产物（不建树）"""
    project = _load(project_file)
    sources = [_pick_source(project, source, by_link)] if source else project.source_data
    for line in format_products(project.active_functions, sources):
        console.print(escape(line))


if __name__ == "__main__":
    app()

# python -m sctree.cli count project.yml babeba
