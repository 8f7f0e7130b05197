#!filepath: sctree/project/schemas.py
from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError, model_validator

# link 可以是 int 或 str，不做类型转换（1 和 "1" 是不同的 link）
DataLink = Union[StrictInt, StrictStr]


class SourceDatum(BaseModel):
    """A single item in the source data; extra fields are kept."""

    model_config = ConfigDict(extra="allow")

    display: StrictStr
    link: Optional[DataLink] = None


class TargetDatum(SourceDatum):
    """A single item in the target data; ``link`` is required."""

    link: DataLink


class ProjectFile(BaseModel):
    """
    项目文件（YAML），路径都相对于项目文件本身：

        functions: sound_changes.py      # 模块级 FUNCTIONS = [...]
        source_data: source.yml
        target_data: target.yml          # 可选

    或者数据由 functions 文件里的函数提供（例如查数据库）：

        functions: sound_changes.py
        get_data: get_data               # 无参数，返回 {"source_data": [...], "target_data": [...]}
    """

    model_config = ConfigDict(extra="forbid")

    functions: StrictStr
    source_data: Optional[StrictStr] = None
    target_data: Optional[StrictStr] = None
    get_data: Optional[StrictStr] = None

    @model_validator(mode="after")
    def one_data_source(self) -> "ProjectFile":
        if self.get_data is None and self.source_data is None:
            raise ValueError("either source_data or get_data is required")
        if self.get_data is not None and (self.source_data or self.target_data):
            raise ValueError("get_data cannot be combined with source_data / target_data")
        return self


def humanize(err: ValidationError) -> tuple[str, Optional[str]]:
    """第一条校验错误 -> (message, field)"""
    first = err.errors()[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else None
    where = ".".join(str(p) for p in loc)
    message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    return message, field
