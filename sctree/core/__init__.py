from .events import PairProgress, TraversalEvent, TraversalState, TraversalStatus, TreeCounts
from .leaves import final_values, format_products, iter_leaves, matches_target
from .record import Record, display_of, distinct, duplicates, evolve, map_equal
from .signals import CallbackSink, CancelToken, EventChannel, NullSink, ThrottledSink
from .traversal import (
    PathFinder,
    PathSearch,
    RenderFragment,
    Traversal,
    TraversalResult,
    TreeCounter,
    TreeRenderer,
    count_tree,
    find_paths,
    render_tree,
)
from .tree import Tree, TreeNode, function_name, grow_tree
from .verify import BatchVerifier, VerificationResult, find_mismatches

__all__ = [
    "Record", "display_of", "distinct", "duplicates", "evolve", "map_equal",
    "Tree", "TreeNode", "function_name", "grow_tree",
    "PairProgress", "TraversalEvent", "TraversalState", "TraversalStatus", "TreeCounts",
    "CallbackSink", "CancelToken", "EventChannel", "NullSink", "ThrottledSink",
    "Traversal", "TraversalResult", "TreeCounter", "PathFinder", "PathSearch",
    "TreeRenderer", "RenderFragment", "count_tree", "find_paths", "render_tree",
    "iter_leaves", "final_values", "matches_target", "format_products",
    "BatchVerifier", "VerificationResult", "find_mismatches",
]
