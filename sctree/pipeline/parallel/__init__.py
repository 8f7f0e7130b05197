from .executor import ParallelExecutor
from .types import ParallelKind, ParallelOutcome

__all__ = ["ParallelExecutor", "ParallelKind", "ParallelOutcome"]
