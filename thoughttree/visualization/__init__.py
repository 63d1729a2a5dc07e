"""
Visualization for reasoning tree traversals.

- YAML-configured color palette
- SVG frame rendering driven by traversal commands
- HTML report export with step-by-step playback
"""

from .colors import ColorManager, get_color_manager
from .frames import TraversalFrame, TreeFrameRenderer, truncate_label

__all__ = [
    "ColorManager",
    "get_color_manager",
    "TraversalFrame",
    "TreeFrameRenderer",
    "truncate_label",
]
