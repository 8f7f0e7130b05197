#!filepath: sctree/project/loader.py
from __future__ import annotations

import importlib.util
import os
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import ValidationError

from sctree import logs
from sctree.core.record import LINK, Record
from sctree.core.tree import TransformationFunction, function_name
from sctree.project.links import check_links, pair_by_link
from sctree.project.schemas import ProjectFile, SourceDatum, TargetDatum, humanize
from sctree.utils.errors import ProjectLoadError

FUNCTIONS_ATTR = "FUNCTIONS"
SOURCE_KEY = "source_data"
TARGET_KEY = "target_data"


@dataclass
class Project:
    """
    一次加载的完整项目。

    - functions   : 按顺序的变换函数
    - source_data : 原样保留的 dict（已校验）
    - target_data : 可选；存在时 link 已校验一一对应
    - active      : 与 functions 等长的开关；None = 全部启用
    """

    project_file: Path
    functions: List[TransformationFunction]
    source_data: List[Record]
    target_data: Optional[List[Record]] = None
    active: Optional[List[bool]] = None

    def __setattr__(self, name: str, value: Any) -> None:
        # active 每次赋值都校验长度，短列表不能悄悄关掉后面的函数
        if name == "active":
            value = self._checked_active(value)
        super().__setattr__(name, value)

    def _checked_active(self, flags: Optional[Sequence[bool]]) -> List[bool]:
        if flags is None:
            return [True] * len(self.functions)
        flags = list(flags)
        if len(flags) != len(self.functions):
            raise ProjectLoadError(
                f"active has {len(flags)} flags for {len(self.functions)} functions",
                filename=str(self.project_file),
                field="active",
            )
        return flags

    @property
    def has_targets(self) -> bool:
        return self.target_data is not None

    @property
    def active_functions(self) -> List[TransformationFunction]:
        return [f for f, on in zip(self.functions, self.active) if on]

    def function_names(self) -> List[str]:
        return [function_name(f) for f in self.functions]

    def pairs(self) -> list:
        if self.target_data is None:
            raise ProjectLoadError("Project has no target data", filename=str(self.project_file))
        return pair_by_link(self.source_data, self.target_data)

    def source(self, link: Any) -> Record:
        return _find(self.source_data, LINK, link, "source data")

    def target(self, link: Any) -> Record:
        if self.target_data is None:
            raise ProjectLoadError("Project has no target data", filename=str(self.project_file))
        return _find(self.target_data, LINK, link, "target data")

    def find_source(self, display: str) -> Record:
        return _find(self.source_data, "display", display, "source data")


def _find(records: List[Record], key: str, value: Any, name: str) -> Record:
    for rec in records:
        if rec.get(key) == value:
            return rec
    raise ProjectLoadError(f"No item with {key}={value!r}", filename=name)


# ------------------------------------------------------------------
# loading
# ------------------------------------------------------------------
def attach_to_path(source: Path | str, new: str) -> Path:
    """Resolve ``new`` against the directory of ``source``: ../a.yml + /p/x.yml -> /a.yml"""
    return Path(os.path.normpath(Path(source).parent / new))


def load_projectfile(filename: Path | str) -> ProjectFile:
    raw = _read_yaml(Path(filename))
    if not isinstance(raw, dict):
        raise ProjectLoadError("Project file must be a mapping", filename=str(filename))
    try:
        return ProjectFile(**raw)
    except ValidationError as e:
        message, fld = humanize(e)
        raise ProjectLoadError(message, filename=str(filename), field=fld) from None


@logs.catch("user functions failed to load", log_time=False, quiet=(ProjectLoadError,))
def import_functions_file(path: Path) -> ModuleType:
    """
    Execute the functions file as ordinary Python and return the module.

    There is no sandbox.
    """
    if not path.exists():
        raise ProjectLoadError("File not found", filename=str(path))

    spec = importlib.util.spec_from_file_location(f"sctree_user_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ProjectLoadError("Cannot import functions file", filename=str(path))

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def functions_of(module: ModuleType, path: Path) -> List[TransformationFunction]:
    """The module-level ``FUNCTIONS`` list, checked to hold callables only."""
    functions = getattr(module, FUNCTIONS_ATTR, None)
    if not isinstance(functions, (list, tuple)):
        raise ProjectLoadError(
            f"Functions file must define a list named {FUNCTIONS_ATTR}",
            filename=str(path),
        )

    for idx, f in enumerate(functions, start=1):
        if not callable(f):
            raise ProjectLoadError(
                "Not a function",
                filename=str(path),
                index=idx,
                display=repr(f),
            )
    return list(functions)


def load_functions(path: Path) -> List[TransformationFunction]:
    """Import the functions file and read its ``FUNCTIONS`` list."""
    return functions_of(import_functions_file(path), path)


def validate_data(raw: Any, schema: type[SourceDatum], name: str) -> List[Record]:
    """Check every item against ``schema``; the dicts themselves are returned unchanged."""
    if not isinstance(raw, list):
        raise ProjectLoadError("Data must be a list", filename=name)

    for idx, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise ProjectLoadError("Data item must be a mapping", filename=name, index=idx)
        try:
            schema(**item)
        except ValidationError as e:
            message, fld = humanize(e)
            raise ProjectLoadError(
                message,
                filename=name,
                index=idx,
                display=item.get("display"),
                field=fld,
            ) from None
    return raw


def load_data(path: Path, schema: type[SourceDatum], name: str) -> List[Record]:
    return validate_data(_read_yaml(path), schema, name)


@logs.catch("get_data failed", log_time=True, quiet=(ProjectLoadError,))
def fetch_data(module: ModuleType, attr: str, path: Path) -> Dict[str, Any]:
    """
    Call a data loader defined in the functions file (e.g. one that reads a
    database). It takes no arguments and returns
    ``{"source_data": [...]}`` or ``{"source_data": [...], "target_data": [...]}``.
    """
    getter = getattr(module, attr, None)
    if not callable(getter):
        raise ProjectLoadError(
            f"Functions file has no function named {attr}",
            filename=str(path),
            field="get_data",
        )

    data = getter()
    if not isinstance(data, dict) or SOURCE_KEY not in data:
        raise ProjectLoadError(
            f"{attr}() must return a mapping with {SOURCE_KEY!r}",
            filename=str(path),
            field="get_data",
        )
    unknown = sorted(set(data) - {SOURCE_KEY, TARGET_KEY}, key=str)
    if unknown:
        raise ProjectLoadError(
            f"{attr}() returned unknown keys: {unknown}",
            filename=str(path),
            field="get_data",
        )
    return data


def load_project(filename: Path | str) -> Project:
    """
    Load functions and data named by a project file.

    Data come either from ``source_data`` / ``target_data`` files or from the
    ``get_data`` function of the functions file; both go through the same
    validation and link checks.
    """
    filename = Path(filename)
    pf = load_projectfile(filename)

    functions_path = attach_to_path(filename, pf.functions)
    module = import_functions_file(functions_path)
    functions = functions_of(module, functions_path)

    if pf.get_data is not None:
        data = fetch_data(module, pf.get_data, functions_path)
        sources = validate_data(data[SOURCE_KEY], SourceDatum, "source data")
        raw_targets = data.get(TARGET_KEY)
        targets = None
        if raw_targets is not None:
            targets = validate_data(raw_targets, TargetDatum, "target data")
    else:
        sources = load_data(attach_to_path(filename, pf.source_data), SourceDatum, "source data")
        targets = None
        if pf.target_data is not None:
            targets = load_data(attach_to_path(filename, pf.target_data), TargetDatum, "target data")

    if targets is not None:
        check_links(sources, targets)

    logs.info(
        f"[Project] loaded {filename.name}: functions={len(functions)} "
        f"sources={len(sources)} targets={len(targets) if targets is not None else 0} "
        f"from={'get_data' if pf.get_data else 'files'}"
    )
    return Project(
        project_file=filename,
        functions=functions,
        source_data=sources,
        target_data=targets,
    )


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ProjectLoadError("File not found", filename=str(path))
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ProjectLoadError(f"Invalid YAML: {e}", filename=str(path)) from None
