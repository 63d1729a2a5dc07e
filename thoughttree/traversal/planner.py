"""
Traversal Planner

Derives the step sequences the controller walks through. A step is the list
of node ids revealed together in one tick.

- Downward, layered: one step per depth, root first (BFS by construction -
  a preorder visit bucketed by depth gives the same grouping as level order)
- Downward, sequential: one singleton step per node in preorder (DFS)
- Upward: surviving productive and framing nodes per depth, deepest first,
  root last; empty depths are skipped
"""

from enum import Enum
from typing import AbstractSet, List, Optional

from ..tree.model import NodeId, NodeStatus, ThoughtTree

Step = List[NodeId]


class TraversalMode(Enum):
    """How the downward phase groups nodes into steps."""
    LAYERED = "layered"
    SEQUENTIAL = "sequential"


def generate_layered_steps(tree: ThoughtTree) -> List[Step]:
    """``[level0_ids, level1_ids, ..., levelN_ids]`` regardless of status."""
    return tree.nodes_by_depth()


def generate_sequential_steps(tree: ThoughtTree) -> List[Step]:
    """One ``[node_id]`` step per node in preorder."""
    return [[node_id] for node_id in tree.preorder()]


def is_synthesis_candidate(tree: ThoughtTree, node_id: NodeId) -> bool:
    """Productive thoughts and input/output nodes take part in synthesis."""
    node = tree[node_id]
    return node.status == NodeStatus.PRODUCTIVE or node.is_framing


def generate_upward_steps(
    tree: ThoughtTree,
    deleted: AbstractSet[NodeId] = frozenset(),
    faded: AbstractSet[NodeId] = frozenset(),
) -> List[Step]:
    """
    Synthesis buckets from the deepest level up to the root.

    Args:
        tree: The tree
        deleted: Ids retired by the deletion effect during the downward phase
        faded: Ids faded out by a deletion cascade

    Returns:
        Non-empty buckets ordered deepest first
    """
    buckets = []
    for level in reversed(tree.nodes_by_depth()):
        bucket = [
            node_id for node_id in level
            if is_synthesis_candidate(tree, node_id)
            and node_id not in deleted
            and node_id not in faded
        ]
        if bucket:
            buckets.append(bucket)
    return buckets


class TraversalPlanner:
    """
    Step sequences for one tree.

    The downward sequence is fixed at construction by the traversal mode.
    The upward sequence depends on which nodes were deleted or faded during
    the downward phase, so it is built on first request and cached; the
    cache is dropped only by ``invalidate_upward()``.
    """

    def __init__(self, tree: ThoughtTree, mode: TraversalMode = TraversalMode.LAYERED):
        self.tree = tree
        self.mode = mode
        if mode == TraversalMode.SEQUENTIAL:
            self.downward_steps = generate_sequential_steps(tree)
        else:
            self.downward_steps = generate_layered_steps(tree)
        self._upward_cache: Optional[List[Step]] = None

    @property
    def has_upward_steps(self) -> bool:
        """Whether the upward cache is populated."""
        return self._upward_cache is not None

    def upward_steps(self, deleted: AbstractSet[NodeId] = frozenset(),
                     faded: AbstractSet[NodeId] = frozenset()) -> List[Step]:
        """Cached upward steps, built from the given deletion state on a miss."""
        if self._upward_cache is None:
            self._upward_cache = generate_upward_steps(self.tree, deleted, faded)
        return self._upward_cache

    def invalidate_upward(self):
        self._upward_cache = None
