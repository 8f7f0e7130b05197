#!filepath: sctree/config/engine_config.py
from typing import List, Optional

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    # None -> os.cpu_count()
    max_workers: Optional[int] = Field(default=None, ge=1)
    # ThrottledSink: 每 N 个 progress 事件转发一次
    progress_every: int = Field(default=10_000, ge=1)
    # EventChannel 容量，满了 producer 阻塞
    channel_size: int = Field(default=1024, ge=1)
    compare_fields: List[str] = Field(default_factory=lambda: ["display"])
    marker: str = "…"
