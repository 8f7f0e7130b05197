# tests/conftest.py
from __future__ import annotations

import textwrap
from typing import Callable, List

import pytest
import yaml
from loguru import logger

from sctree.core.events import TraversalEvent
from sctree.core.record import evolve


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


@pytest.fixture
def make_appender() -> Callable:
    """
    Factory: appender("2a", "2b", name="fn2") 返回一个变换函数，
    对每个 suffix 产出一个 display + suffix 的新 record。
    """

    def _make(*suffixes: str, name: str):
        def f(x):
            return [evolve(x, display=x["display"] + s) for s in suffixes]

        f.__name__ = name
        return f

    return _make


@pytest.fixture
def noop() -> Callable:
    def noop(x):
        return [x]

    return noop


@pytest.fixture
def sample_functions(make_appender) -> list:
    """
    "a" → fn1 → fn2 (2 路) → fn3 (3 路)
    4 个非叶节点，6 个叶子
    """
    return [
        make_appender("1", name="fn1"),
        make_appender("2a", "2b", name="fn2"),
        make_appender("3a", "3b", "3c", name="fn3"),
    ]


@pytest.fixture
def root() -> dict:
    return {"display": "a"}


class CollectingSink:
    def __init__(self):
        self.events: List[TraversalEvent] = []

    def __call__(self, event: TraversalEvent) -> None:
        self.events.append(event)

    def statuses(self) -> list:
        return [e.status for e in self.events]

    def payloads(self, status) -> list:
        return [e.payload for e in self.events if e.status is status]


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


FUNCTIONS_PY = textwrap.dedent(
    '''
    from sctree.core.record import evolve


    def lengthen(x):
        return [evolve(x, display=x["display"] + ":"), x]


    def voice(x):
        return [evolve(x, display=x["display"].replace("t", "d"))]


    FUNCTIONS = [lengthen, voice]
    '''
)


@pytest.fixture
def write_project(tmp_path):
    """
    在 tmp_path 下写一个完整项目，返回项目文件路径。
    传 None 表示不写该文件 / 不在项目文件里引用。
    """

    def _write(
            *,
            functions=FUNCTIONS_PY,
            sources=None,
            targets=None,
            project=None,
    ):
        if sources is None:
            sources = [
                {"display": "ta", "link": 1},
                {"display": "ka", "link": 2, "gloss": "crow"},
            ]

        (tmp_path / "rules").mkdir(exist_ok=True)
        if functions is not None:
            (tmp_path / "rules" / "changes.py").write_text(functions, encoding="utf-8")
        (tmp_path / "data").mkdir(exist_ok=True)
        (tmp_path / "data" / "source.yml").write_text(
            yaml.safe_dump(sources, allow_unicode=True), encoding="utf-8"
        )

        if project is None:
            project = {"functions": "rules/changes.py", "source_data": "data/source.yml"}
            if targets is not None:
                project["target_data"] = "data/target.yml"
        if targets is not None:
            (tmp_path / "data" / "target.yml").write_text(
                yaml.safe_dump(targets, allow_unicode=True), encoding="utf-8"
            )

        path = tmp_path / "project.yml"
        path.write_text(yaml.safe_dump(project), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def functions_py() -> str:
    """write_project 默认写入的 functions 文件内容"""
    return FUNCTIONS_PY
