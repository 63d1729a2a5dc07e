"""Layout engine: tidy tree placement with overlap resolution."""

from .tidy import NodePosition, TidyTreeLayout, make_separation
from .legalizer import OverlapResolver, OverlapResult, resolve_overlaps
from .engine import TreeLayout, ViewTransform, compute_layout, plane_size

__all__ = [
    "NodePosition",
    "TidyTreeLayout",
    "make_separation",
    "OverlapResolver",
    "OverlapResult",
    "resolve_overlaps",
    "TreeLayout",
    "ViewTransform",
    "compute_layout",
    "plane_size",
]
