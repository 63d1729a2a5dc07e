"""
Layout Engine

Computes node positions for a ThoughtTree: sizes the plane from the tree
shape, runs the tidy layout with text-aware separation, then resolves any
remaining same-level overlaps. The returned TreeLayout is read-only for
everyone downstream.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from ..config import LayoutConfig
from ..tree.model import NodeId, ThoughtTree
from .legalizer import OverlapResolver, OverlapResult
from .tidy import NodePosition, TidyTreeLayout, make_separation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewTransform:
    """Viewport transform: translate then scale."""
    translate_x: float
    translate_y: float
    scale: float


@dataclass
class TreeLayout:
    """Positions of every node plus the plane they live on."""
    positions: Dict[NodeId, NodePosition]
    width: float
    height: float
    initial_view: ViewTransform
    overlap: OverlapResult = field(default_factory=OverlapResult)

    def position(self, node_id: NodeId) -> Tuple[float, float]:
        pos = self.positions[node_id]
        return (pos.x, pos.y)

    def centroid(self, node_ids: Iterable[NodeId]) -> Optional[Tuple[float, float]]:
        """Mean position of the given nodes, or None for an empty set."""
        points = [self.positions[node_id] for node_id in node_ids]
        if not points:
            return None
        return (
            sum(p.x for p in points) / len(points),
            sum(p.y for p in points) / len(points),
        )

    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) over node centers."""
        xs = [p.x for p in self.positions.values()]
        ys = [p.y for p in self.positions.values()]
        return (min(xs), min(ys), max(xs), max(ys))


def plane_size(tree: ThoughtTree, config: LayoutConfig) -> Tuple[float, float]:
    """
    Width and height of the layout plane.

    Wide levels get proportionally more room than the viewport offers;
    height is one fixed row per depth.
    """
    widest_level = max(tree.level_widths())
    width = max(
        config.viewport_fraction * config.viewport_width,
        widest_level * config.node_width * config.width_padding,
    )
    height = (tree.max_depth + 1) * config.level_height
    return width, height


def compute_layout(tree: ThoughtTree, config: Optional[LayoutConfig] = None) -> TreeLayout:
    """
    Lay out a tree.

    Args:
        tree: The tree to position
        config: Layout geometry; defaults to LayoutConfig()

    Returns:
        TreeLayout with overlap-free positions
    """
    config = config or LayoutConfig()
    width, height = plane_size(tree, config)

    if len(tree) == 1:
        # Nothing to separate; center the lone root on the viewport
        positions = {tree.root_id: NodePosition(x=config.viewport_width / 2, y=0.0, depth=0)}
        width = config.viewport_width
        overlap = OverlapResult()
    else:
        positions = TidyTreeLayout(tree, make_separation(config)).layout(
            width, config.level_height)
        overlap = OverlapResolver(tree, config.min_distance).resolve(positions)

    initial_view = ViewTransform(
        translate_x=config.viewport_width / 2 - width / 2,
        translate_y=config.viewport_height / 6,
        scale=config.initial_scale,
    )

    logger.debug(
        "Layout computed: nodes=%d plane=%.1fx%.1f shifts=%d",
        len(tree), width, height, overlap.shifts_applied,
    )
    return TreeLayout(
        positions=positions,
        width=width,
        height=height,
        initial_view=initial_view,
        overlap=overlap,
    )
