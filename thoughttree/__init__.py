"""
ThoughtTree - Reasoning tree layout and traversal replay

Lays out a tree of reasoning steps and drives a two-phase animation over it:
a downward exploration that prunes rejected branches, then an upward
synthesis that folds surviving nodes back into the root.
"""

__version__ = "0.1.0"

from .config import LayoutConfig, PlaybackConfig, ThoughtTreeConfig, load_config
from .tree import MalformedTreeError, ThoughtTree, build_tree, load_tree_file
from .layout import TreeLayout, compute_layout
from .traversal import CommandRecorder, Renderer, TraversalController

__all__ = [
    "LayoutConfig",
    "PlaybackConfig",
    "ThoughtTreeConfig",
    "load_config",
    "MalformedTreeError",
    "ThoughtTree",
    "build_tree",
    "load_tree_file",
    "TreeLayout",
    "compute_layout",
    "CommandRecorder",
    "Renderer",
    "TraversalController",
]
