# sctree/utils/errors.py
from __future__ import annotations

from typing import Any, Optional


class UserInputError(RuntimeError):
    """
    Raised for invalid user-provided input (project files, data, patterns).
    Should NOT print traceback.
    """


class ProjectLoadError(UserInputError):
    """
    项目文件 / 数据文件 / 函数文件 加载或校验失败。

    附带定位信息，方便 CLI 直接展示：
      - filename : 出错的文件（或 "source data" / "target data"）
      - index    : 1-based 条目序号
      - display  : 出错条目的 display
      - field    : 出错字段
    """

    def __init__(
            self,
            message: str,
            *,
            filename: Optional[str] = None,
            index: Optional[int] = None,
            display: Optional[str] = None,
            field: Optional[str] = None,
    ):
        super().__init__(message)
        self.filename = filename
        self.index = index
        self.display = display
        self.field = field

    def context(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in (
                ("filename", self.filename),
                ("index", self.index),
                ("display", self.display),
                ("field", self.field),
            )
            if v is not None
        }

    def __str__(self) -> str:
        base = super().__str__()
        ctx = self.context()
        if not ctx:
            return base
        where = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{base} ({where})"


class TraversalStateError(RuntimeError):
    """A traversal object was run more than once."""
