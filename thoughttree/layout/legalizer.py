"""
Layout Legalizer

Post-layout pass that guarantees a minimum horizontal gap between nodes on
the same depth level. The tidy layout already separates nodes, but scaling
the plane to its target width can squeeze wide levels below what a label
needs.

Single left-to-right sweep per level:
1. Group nodes by depth, sort each group by x
2. For each adjacent pair closer than ``min_distance``, push the later node
   right by the deficit
3. Apply the same shift to the later node's whole subtree (a rigid
   translation, so the subtree keeps its shape)

Levels are swept top-down; a subtree shift only moves deeper levels, which
are swept afterwards, so one pass leaves every level legal and re-running it
changes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..tree.model import NodeId, ThoughtTree
from .tidy import NodePosition

logger = logging.getLogger(__name__)

# Float slack when comparing gaps, so an already-legal layout stays untouched
GAP_TOLERANCE = 1e-9


@dataclass
class OverlapResult:
    """Result of an overlap resolution pass."""
    shifts_applied: int = 0  # adjacent pairs that were pushed apart
    nodes_moved: int = 0  # node moves, counting subtree members
    max_shift: float = 0.0
    shifted_pairs: List[Tuple[NodeId, NodeId]] = field(default_factory=list)


class OverlapResolver:
    """Enforces ``min_distance`` between same-depth neighbours in place."""

    def __init__(self, tree: ThoughtTree, min_distance: float):
        self.tree = tree
        self.min_distance = min_distance

    def _levels(self, positions: Dict[NodeId, NodePosition]) -> List[List[NodeId]]:
        levels: Dict[int, List[NodeId]] = {}
        for node_id in self.tree.preorder():
            levels.setdefault(positions[node_id].depth, []).append(node_id)
        return [levels[depth] for depth in sorted(levels)]

    def _shift_subtree(self, positions: Dict[NodeId, NodePosition],
                       node_id: NodeId, shift: float) -> int:
        moved = 0
        for member in self.tree.subtree(node_id):
            positions[member].x += shift
            moved += 1
        return moved

    def resolve(self, positions: Dict[NodeId, NodePosition]) -> OverlapResult:
        """
        Resolve overlaps by mutating ``positions``.

        Returns:
            OverlapResult with statistics
        """
        result = OverlapResult()

        for level in self._levels(positions):
            if len(level) < 2:
                continue
            # sorted() is stable, so ties keep preorder (display) order
            ordered = sorted(level, key=lambda node_id: positions[node_id].x)
            for prev_id, curr_id in zip(ordered, ordered[1:]):
                gap = positions[curr_id].x - positions[prev_id].x
                if gap >= self.min_distance - GAP_TOLERANCE:
                    continue
                shift = self.min_distance - gap
                result.nodes_moved += self._shift_subtree(positions, curr_id, shift)
                result.shifts_applied += 1
                result.max_shift = max(result.max_shift, shift)
                result.shifted_pairs.append((prev_id, curr_id))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Overlap resolution: shifts=%d nodes_moved=%d max_shift=%.2f",
                result.shifts_applied, result.nodes_moved, result.max_shift,
            )
        return result

    def find_violations(self, positions: Dict[NodeId, NodePosition]) -> List[Tuple[NodeId, NodeId]]:
        """Adjacent same-depth pairs that are closer than ``min_distance``."""
        violations = []
        for level in self._levels(positions):
            ordered = sorted(level, key=lambda node_id: positions[node_id].x)
            for prev_id, curr_id in zip(ordered, ordered[1:]):
                gap = positions[curr_id].x - positions[prev_id].x
                if gap < self.min_distance - GAP_TOLERANCE:
                    violations.append((prev_id, curr_id))
        return violations


def resolve_overlaps(tree: ThoughtTree, positions: Dict[NodeId, NodePosition],
                     min_distance: float = 180.0) -> OverlapResult:
    """Convenience wrapper around OverlapResolver.resolve()."""
    return OverlapResolver(tree, min_distance).resolve(positions)
