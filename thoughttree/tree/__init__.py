"""Reasoning tree data model and payload loading."""

from .model import (
    HighlightState,
    NodeId,
    NodeKind,
    NodeStatus,
    ThoughtNode,
    ThoughtTree,
)
from .loader import (
    MalformedTreeError,
    build_tree,
    from_text_array,
    load_tree_file,
    normalize_payload,
)

__all__ = [
    "HighlightState",
    "NodeId",
    "NodeKind",
    "NodeStatus",
    "ThoughtNode",
    "ThoughtTree",
    "MalformedTreeError",
    "build_tree",
    "from_text_array",
    "load_tree_file",
    "normalize_payload",
]
